"""
Application configuration management with environment variables.

This module provides centralized configuration management using Pydantic
BaseSettings for type-safe environment variable handling with validation
and default values. Backend credentials are optional: a missing store URL
or service key yields a degraded backend instead of a startup failure.
"""

import json
from functools import lru_cache
from typing import Annotated, Literal, Optional

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = structlog.get_logger(__name__)


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables with the
    APP_ prefix (e.g., APP_DATABASE_URL, APP_SERVICE_KEY).
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend store configuration
    database_url: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection URL of the backend store",
    )

    service_key: Optional[str] = Field(
        default=None,
        description="Backend service credential used to verify bearer tokens",
    )

    jwt_algorithm: str = Field(
        default="HS256",
        description="Bearer token signing algorithm",
    )

    jwt_audience: str = Field(
        default="authenticated",
        description="Expected bearer token audience, empty to skip the check",
    )

    # Object storage configuration
    storage_endpoint_url: Optional[str] = Field(
        default=None,
        description="S3-compatible object storage endpoint",
    )

    storage_access_key_id: Optional[str] = Field(
        default=None,
        description="Object storage access key",
    )

    storage_secret_access_key: Optional[str] = Field(
        default=None,
        description="Object storage secret key",
    )

    storage_region: str = Field(
        default="us-east-1",
        description="Object storage region",
    )

    storage_bucket: str = Field(
        default="tussle-images",
        description="Bucket receiving uploaded order images",
    )

    storage_public_url: Optional[str] = Field(
        default=None,
        description="Base URL under which bucket objects are publicly readable",
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application logging level",
    )

    # Environment Configuration
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment",
    )

    # API Configuration
    api_prefix: str = Field(
        default="/api",
        description="API route prefix",
    )

    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    rate_limit_default: str = Field(
        default="120/minute",
        description="Default per-client request rate limit",
    )

    # Server Configuration
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to",
    )

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on",
    )

    # Application Configuration
    app_name: str = Field(
        default="Tussles API",
        description="Application name",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Application version",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode (exposes error details in responses)",
    )

    # Database Pool Configuration
    db_pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Database connection pool size",
    )

    db_max_overflow: int = Field(
        default=10,
        ge=0,
        le=50,
        description="Maximum overflow connections for database pool",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: Optional[str]) -> Optional[str]:
        """
        Validate database URL format.

        Args:
            v: Database URL value

        Returns:
            Validated database URL, or None when unset or malformed. A
            malformed URL is logged and leaves the backend degraded.
        """
        if v is None or not v.strip():
            return None
        v = v.strip()
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql://", 1)
        if not v.startswith(("postgresql://", "postgresql+asyncpg://")):
            logger.warning(
                "Ignoring malformed database URL, expected postgres://, "
                "postgresql:// or postgresql+asyncpg://",
                scheme=v.split(":", 1)[0],
            )
            return None
        return v

    @field_validator("service_key", "storage_endpoint_url", "storage_public_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from the environment as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v) -> list[str]:
        """
        Parse CORS origins from string or list.

        Args:
            v: CORS origins value (comma-separated string, JSON list string
                or list)

        Returns:
            List of CORS origin URLs
        """
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return [str(origin).strip() for origin in json.loads(v) if str(origin).strip()]
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def store_configured(self) -> bool:
        """Both the store URL and its service credential are present."""
        return self.database_url is not None and self.service_key is not None

    @property
    def storage_configured(self) -> bool:
        """Object storage credentials are present."""
        return (
            self.storage_access_key_id is not None
            and self.storage_secret_access_key is not None
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
