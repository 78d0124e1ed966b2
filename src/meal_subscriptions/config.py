"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    payment_webhook_token: str
    environment: str = _ENVIRONMENT
    business_timezone: str = "Asia/Dubai"
    default_locale: Literal["en", "ar"] = "en"
    slot_allocation_version: Literal["v1", "v2"] = "v2"
    sweep_scheduler_enabled: bool = False
    activation_sweep_cron: str = "15 0 * * *"
    exiting_sweep_cron: str = "30 0 * * *"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
