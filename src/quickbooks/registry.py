"""
Process-wide QuickBooks client

The API and the auto-sync scheduler hand out the same client, so a refresh
rotates the one credential bundle both of them use and a failed refresh
stays failed for both until the user reconnects.
"""

import threading
from typing import Callable, Optional

from .client import QuickBooksClient
from .models import CredentialBundle, QuickBooksConfig
from .storage import QuickBooksStore
from ..utils.logger import get_logger

logger = get_logger(__name__)

_client: Optional[QuickBooksClient] = None
_lock = threading.Lock()


def get_shared_client(config: QuickBooksConfig,
                      store: QuickBooksStore,
                      load_credentials: Optional[Callable[[], Optional[CredentialBundle]]] = None
                      ) -> Optional[QuickBooksClient]:
    """
    Return the shared client, creating it on first use

    A client built for another config or store is replaced.

    Args:
        config: OAuth app configuration and environment
        store: Store the client persists refreshed credentials to
        load_credentials: Where to find credentials when no client exists yet
            (defaults to ``store.load_credentials``)

    Returns:
        The shared client, or None when there are no credentials
    """
    global _client
    with _lock:
        if _client is not None and _client.config == config and _client.store is store:
            return _client

        credentials = (load_credentials or store.load_credentials)()
        if credentials is None:
            return None

        logger.info(f"Creating shared QuickBooks client for company {credentials.realm_id}")
        _client = QuickBooksClient(config, credentials, store=store)
        return _client


def install_credentials(credentials: CredentialBundle) -> None:
    """Hand freshly authorized credentials to the shared client, if there is one"""
    with _lock:
        if _client is not None:
            _client.update_credentials(credentials)


def reset_client() -> None:
    global _client
    with _lock:
        _client = None
