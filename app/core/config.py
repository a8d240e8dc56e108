"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_GLOBAL_DAILY_RATE_LIMIT = 100


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Static type checkers treat required fields as constructor arguments,
    which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_store_settings() -> "StoreSettings":
    return StoreSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """Completion provider configuration.

    Validation of provider-specific requirements happens in the factory.
    """

    provider: str = Field(
        "openai",
        description="LLM provider name (currently only openai)",
    )
    model: str = Field(
        "gpt-4o-mini",
        description="Model name used for chat completions",
    )
    api_key: str | None = Field(
        None,
        description="API key for the completion provider",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (OpenAI-compatible gateways)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        256,
        description="Maximum number of tokens generated per reply",
        ge=1,
    )
    system_prompt: str | None = Field(
        None,
        description="Optional system message prepended to every conversation",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Gate chat requests through the layered rate limiter",
    )
    local_rate_limit_per_minute: int = Field(
        10,
        description="Requests allowed per client address per minute",
        ge=1,
    )
    global_rate_limit_per_minute: int = Field(
        50,
        description="Requests allowed across all clients per minute",
        ge=1,
    )
    global_daily_rate_limit: int = Field(
        DEFAULT_GLOBAL_DAILY_RATE_LIMIT,
        description="Requests allowed across all clients per day",
        validation_alias=AliasChoices(
            "GLOBAL_DAILY_RATE_LIMIT",
            "APP_GLOBAL_DAILY_RATE_LIMIT",
        ),
    )
    rate_limit_strict: bool = Field(
        False,
        description=(
            "Use atomic increment-then-compare instead of read-then-increment. "
            "Removes over-admission under concurrency but counts rejected attempts."
        ),
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    rate_limit_key_prefix: str = Field(
        "",
        description="Namespace prepended to every counter key",
    )
    trust_forwarded_headers: bool = Field(
        True,
        description="Resolve the client address from proxy headers (X-Forwarded-For, ...)",
    )

    max_message_chars: int = Field(
        2000,
        description="Maximum length of a single chat message",
        ge=1,
    )
    max_transcript_messages: int = Field(
        50,
        description="Maximum number of messages accepted in one transcript",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("global_daily_rate_limit", mode="before")
    @classmethod
    def _fallback_daily_limit(cls, value: Any) -> int:
        """Fall back to the default when the variable is unset or not a number."""
        if value is None or isinstance(value, bool):
            return DEFAULT_GLOBAL_DAILY_RATE_LIMIT
        try:
            parsed = int(str(value).strip())
        except ValueError:
            return DEFAULT_GLOBAL_DAILY_RATE_LIMIT
        if parsed < 1:
            return DEFAULT_GLOBAL_DAILY_RATE_LIMIT
        return parsed


class StoreSettings(BaseSettings):
    """Counter store (rate limit backend) configuration."""

    backend: str = Field(
        "memory",
        description="Counter store backend: 'redis' or 'memory'",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL used when backend=redis",
    )
    socket_timeout_seconds: float = Field(
        5.0,
        description="Socket timeout for Redis commands",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    store: StoreSettings = Field(default_factory=_build_store_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
