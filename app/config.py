# app/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Fail fast with clear error messages if required config is missing.

Retention periods themselves live in the database (maintenance_configuration)
so operators can change them without a redeploy. These settings only control
how the process runs maintenance.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = Field(
        ...,
        description="PostgreSQL connection URL",
    )

    # Authentication
    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key for admin endpoints (admin routes fail closed when unset)",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level: DEBUG, INFO, WARNING, ERROR",
    )
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs (False = human-readable)",
    )
    LOG_BASE_DIR: str | None = Field(
        default=None,
        description="Base directory whose logs/ folders are swept. Empty = working directory.",
    )

    # Maintenance scheduler
    MAINTENANCE_SCHEDULER_ENABLED: bool = Field(
        default=True,
        description="Run the daily maintenance loop inside the API process",
    )
    MAINTENANCE_RUN_HOUR_UTC: int = Field(
        default=2,
        ge=0,
        le=23,
        description="Hour of day (UTC) at which the daily maintenance cycle starts",
    )
    MAINTENANCE_RETRY_DELAY_SECONDS: int = Field(
        default=3600,
        ge=1,
        description="Delay before retrying after a cycle crashed",
    )
    MAINTENANCE_ARCHIVED_BY: str = Field(
        default="System Archival",
        description="Value written to archived_by for scheduled runs",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{v}'")
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but SQLAlchemy needs postgresql+psycopg2://"""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+psycopg2://", 1)
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
