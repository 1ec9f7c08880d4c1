"""
Application settings and configuration
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from pathlib import Path

from intuitlib.enums import Scopes
from src.quickbooks.models import QuickBooksConfig

# Get the project root directory
PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # QuickBooks Online Settings
    qb_client_id: str = ""
    qb_client_secret: str = ""
    qb_redirect_uri: str = "http://localhost:8000/api/quickbooks/auth/callback"
    qb_environment: Optional[str] = None  # sandbox | production, follows `environment` when unset
    qb_scopes: List[str] = [Scopes.ACCOUNTING.value, Scopes.PAYMENT.value]
    qb_timeout: int = 30
    qb_verify_state: bool = True

    # Where the connected/error pages live (empty = this server)
    frontend_url: str = ""

    # Storage Settings
    storage_backend: str = "memory"  # memory | database
    database_url: Optional[str] = None
    secret_key: Optional[str] = None

    # Scheduler Settings
    auto_sync_schedule: str = "manual"  # manual | daily | weekly | monthly
    schedule_time: str = "09:00"  # 24h format

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / "config" / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def quickbooks_environment(self) -> str:
        if self.qb_environment:
            return self.qb_environment.lower()
        return "production" if self.is_production else "sandbox"

    def quickbooks_config(self) -> QuickBooksConfig:
        """Build the explicit QuickBooks configuration passed into clients"""
        return QuickBooksConfig(
            client_id=self.qb_client_id,
            client_secret=self.qb_client_secret,
            redirect_uri=self.qb_redirect_uri,
            environment=self.quickbooks_environment,
            scopes=list(self.qb_scopes),
            timeout_seconds=self.qb_timeout,
        )


# Global settings instance
settings = Settings()
