"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (or a .env file in dev).
Policy constants (one-year renewal, 30-day revocation window, reminder
offsets) live here so the engine never hardcodes them.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ExpirationOffset = Annotated[int, Field(ge=1, le=365)]
RevocationOffset = Annotated[int, Field(ge=1, le=30)]


class Environment(StrEnum):
    DEV = "dev"
    PROD = "prod"
    TEST = "test"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Application
    # ------------------------------------------------------------------ #
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = Field(
        default="INFO",
        description="Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool | None = Field(
        default=None,
        description="Force JSON log output. Defaults to on in production only.",
    )
    cors_allowed_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins outside dev mode",
    )

    # ------------------------------------------------------------------ #
    # Access lifecycle policy
    # ------------------------------------------------------------------ #
    renewal_period_days: int = Field(
        default=365,
        ge=1,
        description="Validity of a newly approved or renewed grant",
    )
    revocation_notice_days: int = Field(
        default=30,
        ge=1,
        description="Notice period between scheduling a revocation and enforcing it",
    )
    expiring_soon_days: int = Field(
        default=30,
        ge=1,
        description="Grants expiring within this window are flagged expiring_soon",
    )
    notification_retention_days: int = Field(
        default=90,
        ge=1,
        description="How long sent notifications are kept before cleanup",
    )

    # ------------------------------------------------------------------ #
    # Notification scheduler defaults
    # ------------------------------------------------------------------ #
    expiration_reminder_days: list[ExpirationOffset] = Field(
        default=[30, 7, 1],
        min_length=1,
        description="Days before expiration to send reminders",
    )
    revocation_reminder_days: list[RevocationOffset] = Field(
        default=[7, 1],
        min_length=1,
        description="Days before a scheduled revocation to send reminders",
    )
    enable_batch_processing: bool = True
    max_batch_size: int = Field(default=50, ge=1)

    # ------------------------------------------------------------------ #
    # Acting administrator
    # ------------------------------------------------------------------ #
    # No auth layer: every action is attributed to this identity.
    admin_id: str = "admin-001"
    admin_name: str = "System Administrator"
    admin_email: str = "admin@company.com"
    admin_ip_address: str | None = None

    # ------------------------------------------------------------------ #
    # Derived / Computed
    # ------------------------------------------------------------------ #
    @model_validator(mode="after")
    def _set_debug_from_env(self) -> Settings:
        if self.environment == Environment.DEV:
            self.debug = True
        return self

    @property
    def is_dev(self) -> bool:
        return self.environment in (Environment.DEV, Environment.TEST)

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PROD

    @property
    def use_json_logs(self) -> bool:
        return self.is_prod if self.json_logs is None else self.json_logs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings singleton.

    Use FastAPI dependency injection via Depends(get_settings) in endpoints,
    or call directly in non-request contexts (startup, scripts).
    """
    return Settings()
