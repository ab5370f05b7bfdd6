"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_path = PROJECT_ROOT / ENV_FILE_MAP.get(APP_ENV, ".env.development")

# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_path.is_file():
    from dotenv import load_dotenv
    load_dotenv(_env_path, override=True)


class LLMSettings(BaseSettings):
    """LLM provider configuration for dream interpretation."""

    provider: str = Field(
        "openai",
        description="LLM provider name (currently: openai)",
    )
    model: str = Field(
        "gpt-4o-mini",
        description="Model name used for interpretations",
    )
    api_key: str | None = Field(
        None,
        description="API key for the provider",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (OpenAI-compatible gateways)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    temperature: float = Field(
        0.35,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for interpretations",
    )
    max_tokens: int = Field(
        1024,
        ge=1,
        description="Maximum output tokens per interpretation",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class ThrottleSettings(BaseSettings):
    """Sliding-window throttle applied to public routes."""

    enabled: bool = Field(
        True,
        description="Enable per-client throttling",
    )
    window_ms: int = Field(
        60_000,
        ge=1,
        description="Trailing window length in milliseconds",
    )
    max_requests: int = Field(
        5,
        ge=1,
        description="Maximum admitted requests per client per window",
    )
    sweep_interval_ms: int = Field(
        5 * 60_000,
        ge=1,
        description="Interval between background sweeps of idle clients",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="THROTTLE_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Interpretation result cache."""

    max_entries: int = Field(
        1_000,
        ge=1,
        description="Maximum number of cached interpretations",
    )
    default_ttl_ms: int = Field(
        24 * 60 * 60 * 1_000,
        ge=1,
        description="Time-to-live of cached interpretations in milliseconds",
    )
    evict_fraction: float = Field(
        0.10,
        gt=0.0,
        le=1.0,
        description="Share of max_entries evicted when the cache is full",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    min_dream_chars: int = Field(
        10,
        ge=1,
        description="Minimum dream text length in characters (after trimming)",
    )
    max_dream_chars: int = Field(
        5_000,
        ge=1,
        description="Maximum dream text length in characters (after trimming)",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, ge=0, description="Rotate after this many bytes (0 disables)")
    backup_count: int = Field(5, ge=0, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation id header")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Nested groups are built via default_factory so each reads its own
    environment prefix.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=LLMSettings)
    throttle: ThrottleSettings = Field(default_factory=ThrottleSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
