"""
Centralized configuration for the Hot Lead service.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = Field(default=None)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)

    # Twilio SMS
    twilio_account_sid: Optional[str] = Field(default=None)
    twilio_auth_token: Optional[str] = Field(default=None)
    twilio_from_number: Optional[str] = Field(default=None)

    # Resend email
    resend_api_key: Optional[str] = Field(default=None)
    resend_from_email: str = Field(default="alerts@hotlead.local")

    # Slack
    slack_webhook_url: Optional[str] = Field(default=None)

    # Escalation
    default_notification_email: Optional[str] = Field(default=None)
    dashboard_base_url: str = Field(default="http://localhost:3000")
    default_hot_threshold: int = Field(default=70, ge=1, le=100)
    notification_timeout_seconds: float = Field(default=8.0)
    notification_dedupe_seconds: int = Field(default=60, ge=0)

    # Engine
    engine_version: str = Field(default="engine_v4")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_title: str = Field(default="Hot Lead Scoring API")
    api_version: str = Field(default="1.0.0")
    cors_origins: str = Field(default="*")

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    @property
    def cors_origins_list(self) -> list:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def sms_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number)

    @property
    def email_configured(self) -> bool:
        return bool(self.resend_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
