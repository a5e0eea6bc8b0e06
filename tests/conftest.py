"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any app import so settings are built
from known values instead of a local .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "10")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_MS", "60000")
os.environ.setdefault("APP_RATE_LIMIT_SWEEP_INTERVAL_MS", "60000")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from app.core import rate_limit as rate_limit_module  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_process_limiter():
    """Stop any process-wide limiter (and its sweeper thread) between tests."""
    yield
    rate_limit_module.shutdown_rate_limiter()
