"""
Adjudication Core Configuration
Settings for eligibility evaluation, lifecycle handling and the audit boundary.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
Verified: 2026-10-17
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.enums import WaitingPeriodReference


class AdjudicationSettings(BaseSettings):
    """
    Eligibility and adjudication configuration settings.

    All settings are read from the environment with the ADJUDICATION_ prefix
    (or from a local .env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="ADJUDICATION_",
    )

    # =========================================================================
    # Application
    # =========================================================================
    ENVIRONMENT: Literal["development", "staging", "production", "testing"] = Field(
        default="development",
        description="Environment: development, staging, production, testing",
    )
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    JSON_LOGS: bool = Field(default=False, description="Emit logs as JSON lines")
    LOG_FILE: Optional[str] = Field(default=None, description="Optional log file path")

    # =========================================================================
    # Eligibility Rules
    # =========================================================================
    AMOUNT_LIMIT_HARD: bool = Field(
        default=True,
        description="Amount limit breach blocks eligibility (False: warning only)",
    )
    COUNT_LIMIT_HARD: bool = Field(
        default=True,
        description="Usage count limit breach blocks eligibility (False: warning only)",
    )
    WAITING_PERIOD_REFERENCE: WaitingPeriodReference = Field(
        default=WaitingPeriodReference.POLICY_START,
        description="Date the waiting period is counted from",
    )
    DEFAULT_COVERAGE_PERCENT: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Coverage percent used when neither rule nor configuration sets one",
    )
    SERVICE_DATE_MAX_FUTURE_DAYS: int = Field(
        default=90,
        ge=0,
        description="Future service dates beyond this window raise a warning",
    )
    SERVICE_DATE_MAX_PAST_YEARS: int = Field(
        default=2,
        ge=0,
        description="Service dates older than this are rejected",
    )

    # =========================================================================
    # Lifecycle & Authorization
    # =========================================================================
    SUPER_ADMIN_BYPASS: bool = Field(
        default=True,
        description="Super admins may act in any role required by a transition",
    )

    # =========================================================================
    # Audit & Storage
    # =========================================================================
    AUDIT_ENABLED: bool = Field(
        default=True,
        description="Record eligibility decisions and status transitions",
    )
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./adjudication.db",
        description="Async SQLAlchemy database URL",
    )
    DB_ECHO: bool = Field(default=False, description="Log SQL statements")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and validate the log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running under tests."""
        return self.ENVIRONMENT == "testing"


# Singleton instance
_settings: Optional[AdjudicationSettings] = None


def get_settings() -> AdjudicationSettings:
    """
    Get cached adjudication settings instance.

    Returns:
        AdjudicationSettings instance
    """
    global _settings
    if _settings is None:
        _settings = AdjudicationSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
