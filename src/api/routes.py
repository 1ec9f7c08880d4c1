"""
FastAPI routes for QuickBooks data
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from .dependencies import (
    NOT_CONNECTED_MESSAGE,
    get_client,
    get_optional_client,
    get_store,
)
from .schemas import ConnectionStatusResponse, ErrorDetail
from ..quickbooks.client import QuickBooksClient
from ..quickbooks.errors import QuickBooksError, QuickBooksErrorType
from ..quickbooks.models import SyncOptions, SyncResult, SyncSnapshot
from ..quickbooks.storage import QuickBooksStore
from ..quickbooks.sync import QuickBooksDataSync
from ..utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/quickbooks", tags=["quickbooks"])


def _last_synced_at(store: QuickBooksStore):
    snapshot = store.load_snapshot()
    return snapshot.synced_at if snapshot else None


@router.get("/status", response_model=ConnectionStatusResponse)
def get_connection_status(client: Optional[QuickBooksClient] = Depends(get_optional_client),
                          store: QuickBooksStore = Depends(get_store)):
    """Check the QuickBooks connection"""
    if client is None:
        error = QuickBooksError(QuickBooksErrorType.AUTHENTICATION, NOT_CONNECTED_MESSAGE)
        return ConnectionStatusResponse(connected=False, error=ErrorDetail(**error.to_dict()))

    result = client.test_connection()
    return ConnectionStatusResponse(
        connected=result.success,
        realm_id=client.realm_id,
        company_name=result.company_name,
        token_state=client.token_state.value,
        last_synced_at=_last_synced_at(store),
        error=ErrorDetail(**result.error.to_dict()) if result.error else None,
    )


@router.get("/company")
def get_company_info(client: QuickBooksClient = Depends(get_client)) -> Dict[str, Any]:
    """Raw CompanyInfo payload for the connected company"""
    return client.get_company_info()


@router.post("/sync", response_model=SyncResult)
def sync_data(options: Optional[SyncOptions] = Body(None),
              client: QuickBooksClient = Depends(get_client),
              store: QuickBooksStore = Depends(get_store)):
    """
    Sync the selected categories from QuickBooks

    Without a body every category is synced from January 1st until today.
    """
    options = options or SyncOptions.defaults()
    logger.info(f"Sync requested: {options.model_dump(exclude_none=True)}")
    return QuickBooksDataSync(client, store=store).sync_data(options)


@router.get("/data", response_model=SyncSnapshot)
def get_synced_data(store: QuickBooksStore = Depends(get_store)):
    """Latest stored snapshot"""
    snapshot = store.load_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No QuickBooks data has been synced yet")
    return snapshot
