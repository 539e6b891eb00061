"""Configuration settings for the ledger analytics engine."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledger_insights.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Flat settings read from environment variables or a .env file.

    ``LEDGER_API_URL`` and ``LEDGER_API_TOKEN`` are required; everything
    else has a default.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Ledger store
    ledger_api_url: str = Field(..., validation_alias="LEDGER_API_URL")
    ledger_api_token: SecretStr = Field(..., validation_alias="LEDGER_API_TOKEN")
    ledger_api_timeout: float = Field(default=30.0, validation_alias="LEDGER_API_TIMEOUT")
    ledger_api_max_retries: int = Field(
        default=3, ge=0, validation_alias="LEDGER_API_MAX_RETRIES"
    )

    # Balance fan-out
    balance_max_concurrency: int = Field(
        default=10, ge=1, validation_alias="BALANCE_MAX_CONCURRENCY"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_settings() -> Settings:
    """Validate settings once at process start.

    Raises:
        ConfigurationError: If a required variable is missing or a value
            fails validation.
    """
    try:
        return get_settings()
    except ValidationError as exc:
        fields = sorted(
            str(err["loc"][0]) if err.get("loc") else "<settings>"
            for err in exc.errors()
        )
        raise ConfigurationError(
            f"Invalid or missing configuration: {', '.join(fields)}",
            fields=fields,
        ) from exc
