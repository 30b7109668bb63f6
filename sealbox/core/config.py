"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

PORT and RATE_LIMIT_MAX are also read without prefix so that common hosting
platforms can set them directly.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Deployment root; relative storage paths are resolved against it
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


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    BaseSettings populates fields from the environment; the type ignore keeps
    static checkers from treating aliased fields as constructor arguments.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_storage_settings() -> "StorageSettings":
    return StorageSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """HTTP surface, anti-abuse and validation limits."""

    host: str = Field(
        "0.0.0.0",
        description="Interface the server binds to",
    )
    port: int = Field(
        3000,
        validation_alias=AliasChoices("PORT", "APP_PORT"),
        description="TCP port the server listens on",
        ge=1,
        le=65535,
    )
    max_body_bytes: int = Field(
        1024 * 1024,
        description="Maximum accepted request body size in bytes",
        ge=1,
    )
    max_message_chars: int = Field(
        1_000_000,
        description="Maximum length of an encrypted message in characters",
        ge=1,
    )
    min_message_chars: int = Field(
        100,
        description="Minimum plausible length of an encrypted message",
        ge=0,
    )
    min_envelope_content_chars: int = Field(
        50,
        description="Minimum trimmed length of the content between armor markers",
        ge=0,
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting per client address on the feedback endpoint",
    )
    rate_limit_max: int = Field(
        10,
        validation_alias=AliasChoices("RATE_LIMIT_MAX", "APP_RATE_LIMIT_MAX"),
        description="Maximum number of requests allowed per window (per client address)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        15 * 60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include RateLimit-* and Retry-After headers",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
        populate_by_name=True,
    )


class StorageSettings(BaseSettings):
    """Locations of the public key, the feedback log and the entry page."""

    root_dir: Path = Field(
        PROJECT_ROOT,
        description="Deployment root used to resolve relative paths",
    )
    public_key_file: Path = Field(
        Path("public-key.asc"),
        description="Armored public key served to clients",
    )
    feedback_file: Path = Field(
        Path("feedback.txt"),
        description="Append-only log of encrypted feedback",
    )
    static_dir: Path = Field(
        Path("public"),
        description="Directory holding the entry page and static assets",
    )
    index_file: str = Field(
        "index.html",
        description="Entry page file name inside static_dir",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )

    def resolve(self, path: Path) -> Path:
        """Resolve ``path`` against the deployment root unless already absolute."""
        if path.is_absolute():
            return path
        return self.root_dir / path

    @property
    def public_key_path(self) -> Path:
        return self.resolve(self.public_key_file)

    @property
    def feedback_path(self) -> Path:
        return self.resolve(self.feedback_file)

    @property
    def static_path(self) -> Path:
        return self.resolve(self.static_dir)

    @property
    def index_path(self) -> Path:
        return self.static_path / self.index_file


class LogSettings(BaseSettings):
    """Log level and line format."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format on stdout: json or plain")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Response header carrying the server-generated request id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    storage: StorageSettings = Field(default_factory=_build_storage_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
