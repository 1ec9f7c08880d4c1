"""
Encryption utilities for QuickBooks tokens at rest
Uses Fernet symmetric encryption from cryptography library
"""

import base64
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .logger import get_logger

logger = get_logger(__name__)

KDF_SALT = b"quickbooks_connector_token_salt"
KDF_ITERATIONS = 100000


class EncryptionManager:
    """
    Encrypts and decrypts token strings

    The Fernet key is derived from a human-readable secret with PBKDF2, so the
    same SECRET_KEY always decrypts what it encrypted.
    """

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError(
                "SECRET_KEY must be set to store QuickBooks tokens in the database. "
                "Generate one with generate_secret_key()."
            )
        self._fernet = self._create_fernet(secret_key)

    @staticmethod
    def _create_fernet(secret_key: str) -> Fernet:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=KDF_SALT,
            iterations=KDF_ITERATIONS,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret_key.encode()))
        return Fernet(key)

    def encrypt(self, plaintext: Optional[str]) -> str:
        if not plaintext:
            return ""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: Optional[str]) -> str:
        """
        Decrypt a string produced by ``encrypt``

        Raises:
            ValueError: if the ciphertext was written with a different key or is corrupt
        """
        if not ciphertext:
            return ""
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as e:
            logger.error("Decryption failed: wrong SECRET_KEY or corrupted token")
            raise ValueError("Could not decrypt stored QuickBooks token") from e


def generate_secret_key() -> str:
    """Generate a new random secret suitable for SECRET_KEY"""
    return Fernet.generate_key().decode()
