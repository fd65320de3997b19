import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Trainer Leave Engine"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://leave_engine:leave_engine@db:5432/leave_engine"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    log_level: str = "INFO"
    auto_create_schema: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10
    # Upper bound on waiting for a trainer account row lock (Postgres only)
    db_lock_timeout_ms: int = 5000

    # Leave application rules
    max_leave_days: int = 30
    reason_min_length: int = 10
    reason_max_length: int = 500

    # Monthly accrual (PERMANENT trainers only)
    accrual_interval_days: int = Field(default=30, gt=0)
    monthly_sick_increment: int = 1
    monthly_casual_increment: int = 1

    # Year-end rollover
    rollover_month: int = Field(default=12, ge=1, le=12)
    rollover_cap_days: int | None = None

    # Job runner
    accrual_tick_seconds: int = 86400
    rollover_tick_seconds: int = 86400
    job_lease_seconds: int = 3600


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging for the API and worker processes."""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
