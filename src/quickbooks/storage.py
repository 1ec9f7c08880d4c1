"""
Persistence port for QuickBooks credentials and sync snapshots

The client and the sync service only talk to ``QuickBooksStore``; the host
application decides where the data actually lives.
"""

import threading
from abc import ABC, abstractmethod
from typing import Optional

from .models import CredentialBundle, SyncSnapshot


class QuickBooksStore(ABC):
    """Save/load interface for the single connected QuickBooks company"""

    @abstractmethod
    def load_credentials(self) -> Optional[CredentialBundle]:
        ...

    @abstractmethod
    def save_credentials(self, credentials: CredentialBundle) -> None:
        ...

    @abstractmethod
    def clear_credentials(self) -> None:
        ...

    @abstractmethod
    def load_snapshot(self) -> Optional[SyncSnapshot]:
        ...

    @abstractmethod
    def save_snapshot(self, snapshot: SyncSnapshot) -> None:
        """Replace the stored snapshot wholesale"""

    @abstractmethod
    def clear_snapshot(self) -> None:
        ...

    def clear(self) -> None:
        """Forget everything (disconnect)"""
        self.clear_credentials()
        self.clear_snapshot()


class MemoryStore(QuickBooksStore):
    """Process-local store, used for development and tests"""

    def __init__(self):
        self._lock = threading.Lock()
        self._credentials: Optional[CredentialBundle] = None
        self._snapshot: Optional[SyncSnapshot] = None

    def load_credentials(self) -> Optional[CredentialBundle]:
        with self._lock:
            return self._credentials.model_copy() if self._credentials else None

    def save_credentials(self, credentials: CredentialBundle) -> None:
        with self._lock:
            self._credentials = credentials.model_copy()

    def clear_credentials(self) -> None:
        with self._lock:
            self._credentials = None

    def load_snapshot(self) -> Optional[SyncSnapshot]:
        with self._lock:
            return self._snapshot

    def save_snapshot(self, snapshot: SyncSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    def clear_snapshot(self) -> None:
        with self._lock:
            self._snapshot = None
