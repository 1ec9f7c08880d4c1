"""
QuickBooks Online synchronization service
"""

from typing import Any, Dict, Optional

from .client import QuickBooksClient
from .errors import classify_error
from .models import SyncOptions, SyncResult, SyncSnapshot, utcnow
from .normalize import (
    normalize_accounts,
    normalize_bills,
    normalize_customers,
    normalize_invoices,
    normalize_payments,
)
from .storage import QuickBooksStore
from ..utils.logger import get_logger

logger = get_logger(__name__)

SYNC_FAILED_MESSAGE = "Failed to sync data from QuickBooks"


def _dump(records) -> list:
    return [record.model_dump(by_alias=True) for record in records]


class QuickBooksDataSync:
    """Pulls the selected categories from QuickBooks and stores a snapshot"""

    def __init__(self, client: QuickBooksClient, store: Optional[QuickBooksStore] = None):
        """
        Initialize the sync service

        Args:
            client: Authenticated QuickBooks client
            store: Where the snapshot of a successful sync is written
        """
        self.client = client
        self.store = store

    def sync_data(self, options: SyncOptions) -> SyncResult:
        """
        Sync all selected data from QuickBooks

        Categories run one after another; the first failure aborts the sync and
        nothing is stored. A snapshot that cannot be written fails the sync too.

        Args:
            options: Which categories to pull and for which date window

        Returns:
            Sync result with the normalized data or the classified error
        """
        try:
            data = self._collect(options)
            synced_at = utcnow()
            if self.store is not None:
                self.store.save_snapshot(SyncSnapshot(synced_at=synced_at, data=data))
                logger.info("QuickBooks data stored successfully")
        except Exception as e:
            error = classify_error(e)
            logger.error(f"Error syncing QuickBooks data ({error.error_type.value}): {error.message}")
            return SyncResult(
                success=False,
                error=f"{SYNC_FAILED_MESSAGE}: {error.message}",
                error_type=error.error_type.value,
            )

        logger.info(f"Sync completed: {', '.join(data) or 'nothing selected'}")
        return SyncResult(success=True, data=data, synced_at=synced_at)

    def _collect(self, options: SyncOptions) -> Dict[str, Any]:
        results: Dict[str, Any] = {}
        start_date, end_date = options.start_date, options.end_date

        if options.sync_accounts:
            logger.info("Syncing accounts...")
            results["accounts"] = _dump(normalize_accounts(self.client.get_accounts()))

        if options.sync_customers:
            logger.info("Syncing customers...")
            results["customers"] = _dump(normalize_customers(self.client.get_customers()))

        if options.sync_invoices:
            logger.info("Syncing invoices...")
            results["invoices"] = _dump(normalize_invoices(self.client.get_invoices(start_date, end_date)))

        if options.sync_bills:
            logger.info("Syncing bills...")
            results["bills"] = _dump(normalize_bills(self.client.get_bills(start_date, end_date)))

        if options.sync_payments:
            logger.info("Syncing payments...")
            results["payments"] = _dump(normalize_payments(self.client.get_payments(start_date, end_date)))

        if options.sync_reports:
            if options.has_date_range:
                logger.info("Syncing reports...")
                results["profitAndLoss"] = self.client.get_profit_and_loss_report(start_date, end_date)
                results["balanceSheet"] = self.client.get_balance_sheet_report(end_date)
                results["cashFlow"] = self.client.get_cash_flow_report(start_date, end_date)
            else:
                logger.warning("Skipping reports: a start and end date are required")

        return results
