"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment so settings never come from a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")

import pytest  # noqa: E402

from error_boundary.core.config import ErrorHandlingSettings  # noqa: E402


@pytest.fixture
def error_settings() -> ErrorHandlingSettings:
    """Development-mode settings."""
    return ErrorHandlingSettings(production=False)


@pytest.fixture
def production_settings() -> ErrorHandlingSettings:
    """Production-mode settings with the default generic message."""
    return ErrorHandlingSettings(production=True)
