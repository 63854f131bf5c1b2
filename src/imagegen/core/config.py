"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database Configuration
    database_url: str = Field(alias="DATABASE_URL")
    # Elevated credential used only to record anonymous generations.
    # Leave empty to skip recording for anonymous callers.
    service_database_url: str = Field(default="", alias="SERVICE_DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # Nano Banana image generation provider
    nano_banana_api_base: str = Field(default="", alias="NANO_BANANA_API_BASE")
    nano_banana_api_key: str = Field(default="", alias="NANO_BANANA_API_KEY")
    nano_banana_model: str = Field(default="nano-banana-fast", alias="NANO_BANANA_MODEL")
    provider_timeout_seconds: float = Field(default=60.0, alias="PROVIDER_TIMEOUT_SECONDS")

    # Result polling: 2000 attempts x 1.5s is a ceiling of roughly 50 minutes
    generation_poll_max_attempts: int = Field(
        default=2000, ge=1, alias="GENERATION_POLL_MAX_ATTEMPTS"
    )
    generation_poll_interval_seconds: float = Field(
        default=1.5, ge=0, alias="GENERATION_POLL_INTERVAL_SECONDS"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def provider_configured(self) -> bool:
        return bool(self.nano_banana_api_base and self.nano_banana_api_key)

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Fails fast with clear error messages if configuration is incomplete.
        Validation is skipped in test environments to avoid breaking tests.
        """
        if self.app_env in ("test", "testing"):
            return self

        missing = []

        if not self.nano_banana_api_base:
            missing.append("NANO_BANANA_API_BASE: Base URL of the nano-banana draw API")

        if not self.nano_banana_api_key:
            missing.append("NANO_BANANA_API_KEY: API key issued by the nano-banana provider")

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            error_msg += "\nPlease update your .env file and restart."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if settings.app_env == "production":
        renderer = [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
