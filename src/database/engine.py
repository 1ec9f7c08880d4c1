"""
Database engine and session management
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import NullPool

from .models import Base
from ..utils.logger import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent


class DatabaseManager:
    """
    Manages database connections and sessions

    SQLite is used by default; any SQLAlchemy URL (e.g. PostgreSQL) works.
    """

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize database manager

        Args:
            database_url: SQLAlchemy database URL
                          If None, uses SQLite in project data directory
        """
        if database_url is None:
            data_dir = PROJECT_ROOT / 'data'
            data_dir.mkdir(exist_ok=True)

            db_path = data_dir / 'quickbooks_connector.db'
            database_url = f'sqlite:///{db_path}'
            logger.info(f"Using SQLite database at: {db_path}")

        self.database_url = database_url

        if database_url.startswith('sqlite'):
            self.engine = create_engine(
                database_url,
                connect_args={'check_same_thread': False},
                poolclass=NullPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
            )

        self.SessionLocal = scoped_session(
            sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        )
        logger.info("Database engine initialized successfully")

    def create_tables(self):
        """Create all tables if they don't exist"""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created/verified")

    @contextmanager
    def get_session(self):
        """
        Context manager for database sessions

        Usage:
            with db_manager.get_session() as session:
                session.add(...)
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def close(self):
        """Close database connections"""
        self.SessionLocal.remove()
        self.engine.dispose()
        logger.info("Database connections closed")
