"""
FastAPI dependencies: settings, QuickBooks config, store and client

Routes only reach these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

import base64
import json
import threading
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Request

from config.settings import Settings, settings as app_settings
from ..database.engine import DatabaseManager
from ..database.repository import DatabaseStore
from ..quickbooks.client import QuickBooksClient
from ..quickbooks.errors import QuickBooksError, QuickBooksErrorType
from ..quickbooks.models import CredentialBundle, QuickBooksConfig, utcnow
from ..quickbooks.oauth_client import QuickBooksOAuthClient
from ..quickbooks.registry import get_shared_client
from ..quickbooks.storage import MemoryStore, QuickBooksStore
from ..utils.encryption import EncryptionManager
from ..utils.logger import get_logger

logger = get_logger(__name__)

AUTH_COOKIE = "qb_auth_data"
STATE_COOKIE = "qb_oauth_state"
AUTH_COOKIE_MAX_AGE = 30 * 24 * 60 * 60
STATE_COOKIE_MAX_AGE = 10 * 60

NOT_CONNECTED_MESSAGE = "QuickBooks is not connected. Please connect your account."

_store: Optional[QuickBooksStore] = None
_lock = threading.Lock()


def get_settings() -> Settings:
    return app_settings


def get_quickbooks_config(settings: Settings = Depends(get_settings)) -> QuickBooksConfig:
    return settings.quickbooks_config()


def build_store(settings: Settings) -> QuickBooksStore:
    """Create the configured credential/snapshot store"""
    if settings.storage_backend == "database":
        db_manager = DatabaseManager(settings.database_url)
        db_manager.create_tables()
        logger.info("Using database store for QuickBooks credentials")
        return DatabaseStore(db_manager, EncryptionManager(settings.secret_key))

    if settings.storage_backend != "memory":
        raise ValueError(f"Unknown storage backend {settings.storage_backend!r}")
    logger.info("Using in-memory store for QuickBooks credentials")
    return MemoryStore()


def get_store(settings: Settings = Depends(get_settings)) -> QuickBooksStore:
    global _store
    with _lock:
        if _store is None:
            _store = build_store(settings)
        return _store


def get_oauth_client(config: QuickBooksConfig = Depends(get_quickbooks_config)) -> QuickBooksOAuthClient:
    return QuickBooksOAuthClient(config)


# -----------------------------------------------------------------------------
# Auth cookie
# -----------------------------------------------------------------------------

def encode_auth_cookie(credentials: CredentialBundle, now: Optional[datetime] = None) -> str:
    """Serialize credentials as base64url JSON {accessToken, refreshToken, expiresIn, realmId} (unpadded)"""
    # issuedAt and expiresIn are both measured from this whole-second instant
    now = (now or utcnow()).replace(microsecond=0)
    payload = credentials.to_auth_data(now)
    payload["issuedAt"] = int(now.timestamp())
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")


def decode_auth_cookie(value: Optional[str]) -> Optional[CredentialBundle]:
    """Parse an auth cookie, returning None when it is missing or unreadable"""
    if not value:
        return None
    try:
        padded = value + "=" * (-len(value) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode()))
        issued_at = (
            datetime.fromtimestamp(int(data["issuedAt"]), tz=timezone.utc)
            if data.get("issuedAt") else None
        )
        return CredentialBundle.from_auth_data(data, issued_at=issued_at)
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Ignoring unreadable {AUTH_COOKIE} cookie: {str(e)}")
        return None


def load_credentials(request: Request, store: QuickBooksStore) -> Optional[CredentialBundle]:
    """Stored credentials, falling back to the auth cookie"""
    credentials = store.load_credentials()
    if credentials is None:
        credentials = decode_auth_cookie(request.cookies.get(AUTH_COOKIE))
    return credentials


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------

def get_optional_client(request: Request,
                        config: QuickBooksConfig = Depends(get_quickbooks_config),
                        store: QuickBooksStore = Depends(get_store)) -> Optional[QuickBooksClient]:
    """
    The shared client for the connected company, or None when not connected

    The scheduler uses the same client, so a failed refresh stays failed
    until the user reconnects.
    """
    return get_shared_client(config, store, lambda: load_credentials(request, store))


def get_client(client: Optional[QuickBooksClient] = Depends(get_optional_client)) -> QuickBooksClient:
    if client is None:
        raise QuickBooksError(QuickBooksErrorType.AUTHENTICATION, NOT_CONNECTED_MESSAGE)
    return client
