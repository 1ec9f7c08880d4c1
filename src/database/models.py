"""
SQLAlchemy database models for QuickBooks credentials and sync snapshots
"""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

# Both tables hold at most one row: the single connected company
SINGLETON_ID = 1


class QuickBooksCredential(Base):
    """
    Token pair for the connected QuickBooks company

    access_token and refresh_token are Fernet-encrypted.
    """
    __tablename__ = 'quickbooks_credentials'

    id = Column(Integer, primary_key=True, default=SINGLETON_ID)
    realm_id = Column(String(50), nullable=False)

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    refresh_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<QuickBooksCredential(realm={self.realm_id}, expires_at={self.expires_at})>"


class SyncSnapshotRecord(Base):
    """Latest successful sync, stored as JSON text"""
    __tablename__ = 'quickbooks_sync_snapshots'

    id = Column(Integer, primary_key=True, default=SINGLETON_ID)
    synced_at = Column(DateTime(timezone=True), nullable=False)
    data = Column(Text, nullable=False)

    def __repr__(self):
        return f"<SyncSnapshotRecord(synced_at={self.synced_at})>"
