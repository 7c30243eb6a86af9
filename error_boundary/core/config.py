"""Error handling configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

The adapters never read the process environment themselves: they receive an
ErrorHandlingSettings instance at construction time.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

DEFAULT_INTERNAL_ERROR_MESSAGE = "An error occurred while processing your request"

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING", "").lower() != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _is_production_env() -> bool:
    return os.getenv("APP_ENV", APP_ENV).strip().lower() == "production"


class ErrorHandlingSettings(BaseSettings):
    """Behaviour switches for the boundary adapters.

    Read-only once built; the same instance is shared by every request.
    """

    enable_grpc_interceptor: bool = Field(
        True,
        description="Register the gRPC exception interceptor",
    )
    enable_detailed_errors: bool = Field(
        False,
        description=(
            "Expose raw messages and type-derived codes for unrecognized "
            "failures, even in production"
        ),
    )
    include_stack_trace: bool = Field(
        False,
        description="Include formatted stack traces in HTTP error details",
    )
    log_sensitive_data: bool = Field(
        False,
        description="Log error messages and detail values, not just their keys",
    )
    internal_error_message: str = Field(
        DEFAULT_INTERNAL_ERROR_MESSAGE,
        description="Generic message returned for unrecognized failures in production",
    )
    use_correlation_ids: bool = Field(
        True,
        description="Honour correlation ids sent by the caller",
    )
    production: bool = Field(
        default_factory=_is_production_env,
        description="Production mode: hide internal exception text from callers",
    )

    model_config = SettingsConfigDict(
        env_prefix="ERROR_HANDLING_",
        case_sensitive=False,
        frozen=True,
    )


class RequestIdSettings(BaseSettings):
    """Per-request id header used by ``request_id_middleware``."""

    header_name: str = Field(
        "X-Request-ID",
        description="Header used to read/echo the per-request id",
    )

    model_config = SettingsConfigDict(
        env_prefix="REQUEST_ID_",
        case_sensitive=False,
    )


def _build_error_handling_settings() -> ErrorHandlingSettings:
    return ErrorHandlingSettings()


def _build_request_id_settings() -> RequestIdSettings:
    return RequestIdSettings()


class Settings(BaseSettings):
    """Main settings container.

    Composed from domain-specific settings; nested settings are created via
    default_factory so env loading works.
    """

    app_env: str = APP_ENV
    error_handling: ErrorHandlingSettings = Field(default_factory=_build_error_handling_settings)
    request_id: RequestIdSettings = Field(default_factory=_build_request_id_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""

    return Settings()


settings = get_settings()
