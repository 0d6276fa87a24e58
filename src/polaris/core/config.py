# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables and .env files."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from polaris.core.constants import (
    DEFAULT_DELIVERY_TIMEOUT,
    DEFAULT_RETRY_AFTER_MINUTES,
    DEFAULT_SWEEP_DELAY_MS,
    MAX_WEBHOOK_ATTEMPTS,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="POLARIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    # Database
    db_path: Path = Path("polaris.db")
    auto_migrate: bool = True

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_workers: int = 1
    api_keys: list[str] = []
    cors_origins: list[str] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v: object) -> list[str]:
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v if isinstance(v, list) else []

    @field_validator("api_keys", mode="before")
    @classmethod
    def _parse_api_keys(cls, v: object) -> list[str]:
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v if isinstance(v, list) else []

    # Inbound webhooks (shared secret with the job runner)
    webhook_secret: str = ""

    # Outbound replay
    webhook_base_url: str = "http://localhost:5173"
    delivery_timeout: float = DEFAULT_DELIVERY_TIMEOUT
    delivery_user_agent: str = "Polaris-Webhook-Retry/1.0"

    # Retry sweep
    retry_max_attempts: int = MAX_WEBHOOK_ATTEMPTS
    retry_after_minutes: int = DEFAULT_RETRY_AFTER_MINUTES
    sweep_delay_ms: int = DEFAULT_SWEEP_DELAY_MS
    sweep_interval_seconds: float = 0.0  # 0 disables the background sweep

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"


def get_settings() -> Settings:
    return Settings()
