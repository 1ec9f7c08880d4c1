"""
QuickBooks Online API client
"""

import threading
from datetime import date
from typing import Any, Dict, Optional, Union

import requests

from .errors import QuickBooksError, QuickBooksErrorType, classify_error
from .models import ConnectionTestResult, CredentialBundle, QuickBooksConfig, TokenState
from .normalize import extract_entities
from .oauth_client import QuickBooksOAuthClient
from .storage import QuickBooksStore
from ..utils.logger import get_logger

logger = get_logger(__name__)

DateLike = Union[date, str]

QUERY_PAGE_SIZE = 1000


def format_query_date(value: DateLike) -> str:
    """Render a date for the query language, rejecting anything that is not YYYY-MM-DD"""
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)).isoformat()
    except ValueError:
        raise QuickBooksError(
            QuickBooksErrorType.INVALID_REQUEST,
            f"Invalid date {value!r}, expected YYYY-MM-DD",
        )


def build_txn_date_query(entity: str,
                         start_date: Optional[DateLike] = None,
                         end_date: Optional[DateLike] = None) -> str:
    """
    Build a ``select * from <entity>`` query with an optional TxnDate window

    Examples:
        build_txn_date_query("Invoice")
            -> "select * from Invoice"
        build_txn_date_query("Bill", "2024-01-01", "2024-06-01")
            -> "select * from Bill WHERE TxnDate >= '2024-01-01' AND TxnDate <= '2024-06-01'"
    """
    query = f"select * from {entity}"

    clauses = []
    if start_date:
        clauses.append(f"TxnDate >= '{format_query_date(start_date)}'")
    if end_date:
        clauses.append(f"TxnDate <= '{format_query_date(end_date)}'")

    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    return query


class QuickBooksClient:
    """QuickBooks Online API client wrapper"""

    def __init__(self,
                 config: QuickBooksConfig,
                 credentials: CredentialBundle,
                 store: Optional[QuickBooksStore] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize QuickBooks client

        Args:
            config: OAuth app configuration and environment
            credentials: Token bundle for the connected company (mutated on refresh)
            store: Where refreshed credentials are persisted
            session: HTTP session, shared with the OAuth client
        """
        self.config = config
        self.credentials = credentials
        self.store = store
        self.session = session or requests.Session()
        self.oauth = QuickBooksOAuthClient(config, session=self.session)
        self.base_url = config.api_base_url

        self._lock = threading.RLock()
        self._refresh_failed = False

        logger.info(
            f"QuickBooks client initialized for company {credentials.realm_id} ({config.environment})"
        )

    @property
    def realm_id(self) -> str:
        return self.credentials.realm_id

    @property
    def token_state(self) -> TokenState:
        if self._refresh_failed:
            return TokenState.FAILED
        return self.credentials.state()

    def update_credentials(self, credentials: CredentialBundle) -> None:
        """Install a freshly authorized bundle, leaving the FAILED state"""
        with self._lock:
            self.credentials = credentials
            self._refresh_failed = False

    # -------------------------------------------------------------------------
    # Token management
    # -------------------------------------------------------------------------

    def _ensure_valid_token(self) -> None:
        """Refresh the access token when it is within the expiry margin"""
        with self._lock:
            if self._refresh_failed:
                raise QuickBooksError(
                    QuickBooksErrorType.AUTHENTICATION,
                    "Access token expired and could not be refreshed. Please reconnect to QuickBooks.",
                )
            if self.credentials.needs_refresh():
                self._refresh_access_token()

    def _refresh_access_token(self) -> None:
        logger.info(f"Access token for company {self.realm_id} is about to expire, refreshing")
        try:
            tokens = self.oauth.refresh_tokens(self.credentials.refresh_token)
        except QuickBooksError:
            # Keep the old token; nothing works until the user re-authorizes
            self._refresh_failed = True
            raise

        self.credentials.apply_refresh(tokens)

        if self.store is not None:
            try:
                self.store.save_credentials(self.credentials)
            except Exception as e:
                logger.error(f"Failed to persist refreshed credentials: {str(e)}")

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credentials.access_token}",
            "Accept": "application/json",
        }

    def _get(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Authenticated GET against ``{base}/company/{realm}/{endpoint}``

        Raises:
            QuickBooksError: for every failure, including the token refresh
        """
        self._ensure_valid_token()

        url = f"{self.base_url}/company/{self.realm_id}/{endpoint}"
        try:
            response = self.session.get(
                url,
                headers=self._get_headers(),
                params=params,
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            error = classify_error(e)
            logger.error(
                f"QuickBooks request to {endpoint} failed ({error.error_type.value}, "
                f"status={error.status_code}, intuit_tid={error.intuit_tid}): {error.message}"
            )
            raise error from e

    def _query(self, query: str) -> Dict[str, Any]:
        """Run a query language statement and return the raw payload"""
        logger.debug(f"Running query: {query}")
        return self._get("query", params={"query": query})

    def _query_all(self, query: str, entity: str) -> Dict[str, Any]:
        """
        Run a query page by page and merge the pages into one payload

        QuickBooks caps every answer at MAXRESULTS rows, so pages are requested
        until one comes back short.

        Args:
            query: Statement without STARTPOSITION/MAXRESULTS
            entity: Key of the collection under ``QueryResponse``

        Returns:
            The payload of a single page as is, or the last page with the
            collections of every page merged into it
        """
        records = []
        start_position = 1
        while True:
            payload = self._query(f"{query} STARTPOSITION {start_position} MAXRESULTS {QUERY_PAGE_SIZE}")
            page = extract_entities(payload, entity)
            records.extend(page)
            if len(page) < QUERY_PAGE_SIZE:
                break
            start_position += QUERY_PAGE_SIZE

        if start_position == 1:
            return payload

        logger.info(f"Fetched {len(records)} {entity} records in {start_position // QUERY_PAGE_SIZE + 1} pages")
        merged = dict(payload) if isinstance(payload, dict) else {}
        query_response = merged.get("QueryResponse")
        if not isinstance(query_response, dict):
            query_response = {}
        merged["QueryResponse"] = {
            **query_response,
            entity: records,
            "startPosition": 1,
            "maxResults": len(records),
        }
        return merged

    # -------------------------------------------------------------------------
    # Company Info
    # -------------------------------------------------------------------------

    def get_company_info(self) -> Dict[str, Any]:
        """Get company information (also the connectivity check)"""
        return self._get(f"companyinfo/{self.realm_id}")

    def test_connection(self) -> ConnectionTestResult:
        """
        Test the connection to QuickBooks API

        Returns:
            Result with the company name, or the classified error. Never raises.
        """
        try:
            company_info = self.get_company_info()
        except Exception as e:
            error = classify_error(e)
            logger.error(f"QuickBooks connection test failed: {error.message}")
            return ConnectionTestResult(success=False, error=error)

        company_name = (company_info.get("CompanyInfo") or {}).get("CompanyName")
        logger.info(f"Connected to QuickBooks company: {company_name or 'Unknown'}")
        return ConnectionTestResult(success=True, company_name=company_name)

    # -------------------------------------------------------------------------
    # Lists
    # -------------------------------------------------------------------------

    def get_accounts(self) -> Dict[str, Any]:
        """Get the chart of accounts"""
        return self._query_all("select * from Account", "Account")

    def get_customers(self) -> Dict[str, Any]:
        """Get all customers"""
        return self._query_all("select * from Customer", "Customer")

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def get_invoices(self,
                     start_date: Optional[DateLike] = None,
                     end_date: Optional[DateLike] = None) -> Dict[str, Any]:
        """Get invoices, optionally limited to a transaction date window"""
        return self._query_all(build_txn_date_query("Invoice", start_date, end_date), "Invoice")

    def get_bills(self,
                  start_date: Optional[DateLike] = None,
                  end_date: Optional[DateLike] = None) -> Dict[str, Any]:
        """Get bills, optionally limited to a transaction date window"""
        return self._query_all(build_txn_date_query("Bill", start_date, end_date), "Bill")

    def get_payments(self,
                     start_date: Optional[DateLike] = None,
                     end_date: Optional[DateLike] = None) -> Dict[str, Any]:
        """Get customer payments, optionally limited to a transaction date window"""
        return self._query_all(build_txn_date_query("Payment", start_date, end_date), "Payment")

    # -------------------------------------------------------------------------
    # Reports (returned exactly as QuickBooks sends them)
    # -------------------------------------------------------------------------

    def get_profit_and_loss_report(self, start_date: DateLike, end_date: DateLike) -> Dict[str, Any]:
        return self._get(
            "reports/ProfitAndLoss",
            params={
                "start_date": format_query_date(start_date),
                "end_date": format_query_date(end_date),
            },
        )

    def get_balance_sheet_report(self, as_of: DateLike) -> Dict[str, Any]:
        return self._get(
            "reports/BalanceSheet",
            params={"as_of": format_query_date(as_of)},
        )

    def get_cash_flow_report(self, start_date: DateLike, end_date: DateLike) -> Dict[str, Any]:
        return self._get(
            "reports/CashFlow",
            params={
                "start_date": format_query_date(start_date),
                "end_date": format_query_date(end_date),
            },
        )
