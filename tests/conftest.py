"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any signup_intake import so the global
settings object picks them up.
"""

import os
from unittest.mock import Mock

import pytest

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("APP_ADMIN_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key-123,test-admin-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from signup_intake.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter  # noqa: E402
from signup_intake.adapters.store.in_memory import InMemorySignupStore  # noqa: E402
from signup_intake.core.app_factory import create_app  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Controllable wall clock for the rate limiter."""
    return Mock(return_value=1_700_000_000.0)


@pytest.fixture
def store() -> InMemorySignupStore:
    return InMemorySignupStore()


@pytest.fixture
def app(store: InMemorySignupStore, clock: Mock):
    limiter = InMemorySlidingWindowRateLimiter(limit=10, window_seconds=3600, clock=clock)
    return create_app(store=store, rate_limiter=limiter)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-API-Key": "test-admin-key-123"}


@pytest.fixture
def valid_payload() -> dict:
    return {
        "full_name": "Jane Doe",
        "email": "Jane.Doe@Example.com",
        "phone": "(555) 123-4567",
        "referral_source": "Instagram",
        "goals": "Meet other women in tech",
    }
