# tests/conftest.py
"""
Global test bootstrap
- Required secrets and test-friendly knobs set BEFORE app modules import
- Mounts a mock Redis client into app.core.redis_client
- Makes SlowAPI rate-limiting test-friendly (bypass by default)
- Flushes the mock Redis around every test so cached subscription state
  never leaks between tests
"""

from __future__ import annotations

import os
import random

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set before importing app modules; settings read env at import)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-0123456789abcdef")
os.environ.setdefault("POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("STREAM_URL_SIGNING_SECRET", "test-stream-secret")
os.environ.setdefault("STREAM_BASE_URL", "/media")
os.environ.setdefault("ENV", "development")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("RATE_LIMIT_NAMESPACE", f"pytest-{random.getrandbits(32)}")
os.environ.setdefault("REDIS_CONNECT_MAX_RETRIES", "1")

# ──────────────────────────────────────────────────────────────────────────────
# 🧪 Install mock Redis globally before any tests run
# ──────────────────────────────────────────────────────────────────────────────
from app.core.redis_client import redis_wrapper  # noqa: E402
from tests.fixtures.mocks.redis import MockRedisClient  # noqa: E402

_MOCK_REDIS = MockRedisClient()
redis_wrapper._client = _MOCK_REDIS

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Shared fixtures
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.world import *  # noqa: F401,F403,E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_redis():
    """Every test starts with an empty, healthy mock Redis."""
    _MOCK_REDIS.store.clear()
    _MOCK_REDIS.fail_with = None
    redis_wrapper._client = _MOCK_REDIS
    yield
    _MOCK_REDIS.store.clear()
    _MOCK_REDIS.fail_with = None
    redis_wrapper._client = _MOCK_REDIS


@pytest.fixture
def redis_client():
    """Use this when a test needs to inspect or break Redis directly."""
    return _MOCK_REDIS
