"""
Configuration management using Pydantic settings.
Loads environment variables (prefix ``REMIT_``) and an optional .env file.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import RemittanceError


class SettingsError(RemittanceError, RuntimeError):
    """Raised when configuration cannot be loaded."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = Field(default="json", pattern=r"^(json|console)$")

    # Database Configuration
    database_url: str = "sqlite:///./remittance.db"
    database_echo: bool = False
    session_backend: str = Field(default="sql", pattern=r"^(sql|memory)$")

    # Caller identity (authentication happens upstream)
    default_user_id: str = "agent1"

    # Corridor
    home_country: str = Field(default="AE", min_length=2, max_length=2)
    home_currency: str = Field(default="AED", min_length=3, max_length=3)
    reference_country: str = Field(default="CN", min_length=2, max_length=2)
    reference_currency: str = Field(default="CNY", min_length=3, max_length=3)
    reference_quote_amount: Decimal = Field(default=Decimal("1000.00"), gt=0)

    # Limits and fee schedule
    max_send_amount: Decimal = Field(default=Decimal("50000.00"), gt=0)
    fee_rate: Decimal = Field(default=Decimal("0.01"), ge=0)
    min_fee: Decimal = Field(default=Decimal("5.00"), ge=0)
    max_fee: Decimal = Field(default=Decimal("50.00"), ge=0)

    # Verification sessions
    verification_ttl_seconds: int = Field(default=300, gt=0)
    session_sweep_interval_seconds: int = Field(default=60, gt=0)

    # Delay handling
    delay_threshold_minutes: int = Field(default=10, ge=0)
    escalation_inquiry_threshold: int = Field(default=3, ge=1)
    business_timezone: str = "Asia/Dubai"

    # Payment initiation and callbacks
    payment_link_base: str = "botimapp://pay"
    callback_voice_url: str = "http://localhost:8080/voice/"
    callback_voice_token: str = "yourVoiceToken"
    callback_text_url: str = "http://localhost:8080/text/"
    callback_text_token: str = "yourTextToken"

    # CORS Configuration
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        env_prefix="REMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("home_country", "reference_country", "home_currency", "reference_currency")
    @classmethod
    def upper_codes(cls, v: str) -> str:
        return v.upper()

    @field_validator("max_fee")
    @classmethod
    def max_fee_not_below_min(cls, v: Decimal, info) -> Decimal:
        min_fee = info.data.get("min_fee")
        if min_fee is not None and v < min_fee:
            raise ValueError("max_fee must be greater than or equal to min_fee")
        return v

    def callback_config(self, provider: str) -> dict:
        """Return callback URL and token for a provider, falling back to voice."""
        if provider == "text":
            return {"url": self.callback_text_url, "token": self.callback_text_token}
        return {"url": self.callback_voice_url, "token": self.callback_voice_token}


_CACHED_SETTINGS: Optional[Settings] = None


def load_settings(force_reload: bool = False, **overrides) -> Settings:
    """Load application settings and cache the result.

    Keyword overrides bypass the cache and are not stored in it.
    """

    global _CACHED_SETTINGS

    if overrides:
        try:
            return Settings(**overrides)
        except ValidationError as exc:
            raise SettingsError(f"Invalid configuration: {exc}") from exc

    if _CACHED_SETTINGS is not None and not force_reload:
        return _CACHED_SETTINGS

    try:
        settings = Settings()
    except ValidationError as exc:
        raise SettingsError(f"Invalid configuration: {exc}") from exc

    _CACHED_SETTINGS = settings
    return settings


__all__ = [
    "Settings",
    "SettingsError",
    "load_settings",
]
