"""Settings for SMB Ledger, read from SMBL_* environment variables or .env.

    SMBL_SQLITE_PATH=/var/lib/smbl/ledger.db
    SMBL_LOCK_PERIOD_ON_CLOSE=true
    SMBL_LOG_FORMAT=json
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SMBL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "SMB Ledger"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    sqlite_path: Path = Path("smb_ledger.db")

    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] | None = None
    log_file: Path | None = None

    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_reload: bool = False

    # Bookkeeping rules
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    allocation_tolerance: Decimal = Field(
        default=Decimal("0.005"),
        ge=0,
        description="Residual below which a source is fully applied or a document paid",
    )
    balance_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Epsilon for closing previews and reconciliation differences",
    )
    closing_reference_prefix: str = Field(default="YE-CLOSE", min_length=1)
    lock_period_on_close: bool = Field(
        default=False,
        description="Lock the fiscal year after closing when the caller doesn't say",
    )

    @field_validator("default_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def log_format_for_environment(self) -> "Settings":
        """JSON logs in production unless a format was set explicitly."""
        if self.log_format is None:
            self.log_format = (
                "json" if self.environment == Environment.PRODUCTION else "console"
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings; call get_settings.cache_clear() to reload."""
    return Settings()
