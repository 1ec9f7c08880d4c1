"""
Data models for the QuickBooks integration
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from intuitlib.enums import Scopes

from .errors import QuickBooksError

# A token is treated as unusable this long before it actually expires
TOKEN_EXPIRY_MARGIN = timedelta(minutes=5)
DEFAULT_TOKEN_LIFETIME = 3600

API_BASE_PRODUCTION = "https://quickbooks.api.intuit.com/v3"
API_BASE_SANDBOX = "https://sandbox-quickbooks.api.intuit.com/v3"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QuickBooksConfig(BaseModel):
    """Explicit OAuth/API configuration handed to the clients"""

    client_id: str = Field(..., description="QB app client ID")
    client_secret: str = Field(..., description="QB app client secret")
    redirect_uri: str = Field(..., description="OAuth redirect URI registered with Intuit")
    environment: str = Field(default="sandbox", description="sandbox or production")
    scopes: List[str] = Field(
        default_factory=lambda: [Scopes.ACCOUNTING.value, Scopes.PAYMENT.value]
    )
    timeout_seconds: int = Field(default=30, description="HTTP timeout per vendor call")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def api_base_url(self) -> str:
        return API_BASE_PRODUCTION if self.is_production else API_BASE_SANDBOX


class TokenState(str, Enum):
    VALID = "valid"
    NEAR_EXPIRY = "near_expiry"
    FAILED = "failed"


class CredentialBundle(BaseModel):
    """Access/refresh token pair for one QuickBooks company"""

    access_token: str
    refresh_token: str
    realm_id: str
    expires_at: datetime
    refresh_token_expires_at: Optional[datetime] = None

    @classmethod
    def from_token_response(cls,
                            tokens: Dict[str, Any],
                            realm_id: str,
                            issued_at: Optional[datetime] = None) -> "CredentialBundle":
        """
        Build a bundle from an Intuit token endpoint response

        Args:
            tokens: JSON body with access_token, refresh_token, expires_in,
                    and optionally x_refresh_token_expires_in
            realm_id: Company ID (realm ID)
            issued_at: Issuance time, defaults to now
        """
        issued_at = issued_at or utcnow()
        refresh_lifetime = tokens.get("x_refresh_token_expires_in")
        return cls(
            access_token=tokens["access_token"],
            refresh_token=tokens["refresh_token"],
            realm_id=realm_id,
            expires_at=issued_at + timedelta(seconds=int(tokens.get("expires_in") or DEFAULT_TOKEN_LIFETIME)),
            refresh_token_expires_at=(
                issued_at + timedelta(seconds=int(refresh_lifetime)) if refresh_lifetime else None
            ),
        )

    @classmethod
    def from_auth_data(cls,
                       data: Dict[str, Any],
                       issued_at: Optional[datetime] = None) -> "CredentialBundle":
        """Build a bundle from the browser-facing {accessToken, refreshToken, expiresIn, realmId} shape"""
        issued_at = issued_at or utcnow()
        return cls(
            access_token=data["accessToken"],
            refresh_token=data["refreshToken"],
            realm_id=data["realmId"],
            expires_at=issued_at + timedelta(seconds=int(data.get("expiresIn") or DEFAULT_TOKEN_LIFETIME)),
        )

    def to_auth_data(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.seconds_until_expiry(now),
            "realmId": self.realm_id,
        }

    def seconds_until_expiry(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return max(0, int((as_utc(self.expires_at) - now).total_seconds()))

    def needs_refresh(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return now >= as_utc(self.expires_at) - TOKEN_EXPIRY_MARGIN

    def state(self, now: Optional[datetime] = None) -> TokenState:
        return TokenState.NEAR_EXPIRY if self.needs_refresh(now) else TokenState.VALID

    def apply_refresh(self, tokens: Dict[str, Any], issued_at: Optional[datetime] = None) -> None:
        """Update this bundle in place from a refresh response"""
        issued_at = issued_at or utcnow()
        self.access_token = tokens["access_token"]
        # Intuit may or may not rotate the refresh token
        self.refresh_token = tokens.get("refresh_token") or self.refresh_token
        self.expires_at = issued_at + timedelta(seconds=int(tokens.get("expires_in") or DEFAULT_TOKEN_LIFETIME))
        if tokens.get("x_refresh_token_expires_in"):
            self.refresh_token_expires_at = issued_at + timedelta(
                seconds=int(tokens["x_refresh_token_expires_in"])
            )


class SyncOptions(BaseModel):
    """Which categories to pull and for which date window"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sync_accounts: bool = False
    sync_customers: bool = False
    sync_invoices: bool = False
    sync_bills: bool = False
    sync_payments: bool = False
    sync_reports: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def defaults(cls, today: Optional[date] = None) -> "SyncOptions":
        """Everything on, from January 1st of this year until today"""
        today = today or date.today()
        return cls(
            sync_accounts=True,
            sync_customers=True,
            sync_invoices=True,
            sync_bills=True,
            sync_payments=True,
            sync_reports=True,
            start_date=date(today.year, 1, 1),
            end_date=today,
        )

    @property
    def has_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class QuickBooksRecord(BaseModel):
    """Base for flattened QuickBooks records, serialized with camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Account(QuickBooksRecord):
    id: Optional[str] = None
    name: Optional[str] = None
    account_type: Optional[str] = None
    account_sub_type: Optional[str] = None
    current_balance: float = 0.0
    active: bool = True


class Customer(QuickBooksRecord):
    id: Optional[str] = None
    display_name: Optional[str] = None
    company_name: Optional[str] = None
    primary_email: Optional[str] = None
    primary_phone: Optional[str] = None
    balance: float = 0.0
    active: bool = True


class InvoiceLineItem(QuickBooksRecord):
    description: Optional[str] = None
    amount: float = 0.0
    quantity: Optional[float] = None
    unit_price: Optional[float] = None


class Invoice(QuickBooksRecord):
    id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    txn_date: Optional[str] = None
    due_date: Optional[str] = None
    total_amount: float = 0.0
    balance: float = 0.0
    status: str
    line_items: List[InvoiceLineItem] = Field(default_factory=list)


class BillLineItem(QuickBooksRecord):
    description: Optional[str] = None
    amount: float = 0.0


class Bill(QuickBooksRecord):
    id: Optional[str] = None
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    txn_date: Optional[str] = None
    due_date: Optional[str] = None
    total_amount: float = 0.0
    balance: float = 0.0
    status: str
    line_items: List[BillLineItem] = Field(default_factory=list)


class Payment(QuickBooksRecord):
    id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    txn_date: Optional[str] = None
    amount: float = 0.0
    payment_method_name: Optional[str] = None


class SyncSnapshot(BaseModel):
    """The persisted outcome of the last successful sync"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    synced_at: datetime
    data: Dict[str, Any] = Field(default_factory=dict)


class SyncResult(BaseModel):
    """Outcome of one sync call"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    synced_at: Optional[datetime] = None


class ConnectionTestResult(BaseModel):
    """Outcome of the connectivity check"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    company_name: Optional[str] = None
    error: Optional[QuickBooksError] = None
