"""
Pydantic schemas for API requests and responses
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response schema"""

    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


class ErrorDetail(BaseModel):
    """Classified QuickBooks error with user-facing guidance"""

    type: str = Field(..., description="Error kind")
    message: str = Field(..., description="Error message")
    title: str = Field(..., description="Short title for the error kind")
    help: str = Field(..., description="What the user should do about it")


class ConnectionStatusResponse(BaseModel):
    """QuickBooks connection status"""

    connected: bool = Field(..., description="Whether the connectivity check succeeded")
    realm_id: Optional[str] = Field(None, description="Connected company ID")
    company_name: Optional[str] = Field(None, description="Connected company name")
    token_state: Optional[str] = Field(None, description="valid, near_expiry or failed")
    last_synced_at: Optional[datetime] = Field(None, description="Time of the last successful sync")
    error: Optional[ErrorDetail] = Field(None, description="Why the connection is not usable")


class AuthorizationUrlResponse(BaseModel):
    """Authorization URL for single-page frontends"""

    authorization_url: str = Field(..., description="Intuit authorization URL")
    state: str = Field(..., description="CSRF state token")


class DisconnectResponse(BaseModel):
    """Disconnect response schema"""

    success: bool = Field(..., description="Whether local credentials were cleared")
    message: str = Field(..., description="Response message")
    revoked: bool = Field(default=False, description="Whether Intuit accepted the revocation")
