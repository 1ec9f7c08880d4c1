"""
Database-backed QuickBooks store
Tokens are encrypted before they reach the database
"""

import json
from typing import Optional

from .engine import DatabaseManager
from .models import SINGLETON_ID, QuickBooksCredential, SyncSnapshotRecord
from ..quickbooks.models import CredentialBundle, SyncSnapshot, as_utc
from ..quickbooks.storage import QuickBooksStore
from ..utils.encryption import EncryptionManager
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseStore(QuickBooksStore):
    """QuickBooksStore on top of SQLAlchemy"""

    def __init__(self, db_manager: DatabaseManager, encryption: EncryptionManager):
        self.db = db_manager
        self.encryption = encryption

    def load_credentials(self) -> Optional[CredentialBundle]:
        with self.db.get_session() as session:
            row = session.get(QuickBooksCredential, SINGLETON_ID)
            if row is None:
                return None
            return CredentialBundle(
                access_token=self.encryption.decrypt(row.access_token),
                refresh_token=self.encryption.decrypt(row.refresh_token),
                realm_id=row.realm_id,
                expires_at=as_utc(row.expires_at),
                refresh_token_expires_at=(
                    as_utc(row.refresh_token_expires_at) if row.refresh_token_expires_at else None
                ),
            )

    def save_credentials(self, credentials: CredentialBundle) -> None:
        with self.db.get_session() as session:
            row = session.get(QuickBooksCredential, SINGLETON_ID)
            if row is None:
                row = QuickBooksCredential(id=SINGLETON_ID)
                session.add(row)

            row.realm_id = credentials.realm_id
            row.access_token = self.encryption.encrypt(credentials.access_token)
            row.refresh_token = self.encryption.encrypt(credentials.refresh_token)
            row.expires_at = credentials.expires_at
            row.refresh_token_expires_at = credentials.refresh_token_expires_at

        logger.info(f"Saved QuickBooks credentials for company {credentials.realm_id}")

    def clear_credentials(self) -> None:
        with self.db.get_session() as session:
            session.query(QuickBooksCredential).delete()
        logger.info("Cleared QuickBooks credentials")

    def load_snapshot(self) -> Optional[SyncSnapshot]:
        with self.db.get_session() as session:
            row = session.get(SyncSnapshotRecord, SINGLETON_ID)
            if row is None:
                return None
            return SyncSnapshot(synced_at=as_utc(row.synced_at), data=json.loads(row.data))

    def save_snapshot(self, snapshot: SyncSnapshot) -> None:
        with self.db.get_session() as session:
            row = session.get(SyncSnapshotRecord, SINGLETON_ID)
            if row is None:
                row = SyncSnapshotRecord(id=SINGLETON_ID)
                session.add(row)
            row.synced_at = snapshot.synced_at
            row.data = json.dumps(snapshot.data, default=str)

    def clear_snapshot(self) -> None:
        with self.db.get_session() as session:
            session.query(SyncSnapshotRecord).delete()
