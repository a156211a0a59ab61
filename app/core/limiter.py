from __future__ import annotations

"""
StreamGate — HTTP Rate Limiting (SlowAPI)
=========================================

Highlights
----------
- **Viewer/IP aware** keying: per-viewer when auth sets `request.state.viewer_id`,
  else per-client-IP (X-Forwarded-For first hop, X-Real-IP, client.host).
- Default limits applied by `SlowAPIMiddleware` to every route; probes opt
  out with `@rate_limit_exempt()`.
- **Test/CI friendly**: `RATE_LIMIT_ENABLED=false` skips the middleware,
  `RATE_LIMIT_TEST_BYPASS=1` builds the limiter disabled, so no request
  is ever counted.
- **Backends**: `RATELIMIT_STORAGE_URI` (e.g. Redis) or in-memory fallback.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
DEFAULT_RATE_LIMIT           default: "120/minute"
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATE_LIMIT_NAMESPACE         default: "" (e.g., "pytest-<runid>")
RATE_LIMIT_TEST_BYPASS       default: ""
"""

import os
from typing import Callable, List, Optional

from loguru import logger
from starlette.requests import Request
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from app.core.config import settings

NAMESPACE = os.getenv("RATE_LIMIT_NAMESPACE", "").strip()


def _enabled() -> bool:
    return os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() == "true"


def _test_bypass() -> bool:
    return os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() in {"1", "true", "yes", "on"}


# ──────────────────────────────────────────────────────────────
# 🧠 Keying
# ──────────────────────────────────────────────────────────────
def client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return get_remote_address(request) or "unknown"


def rate_limit_key(request: Request) -> str:
    """`viewer:<id>` when authenticated, else `ip:<addr>`; namespaced when configured."""
    viewer_id = getattr(request.state, "viewer_id", None)
    key = f"viewer:{viewer_id}" if viewer_id else f"ip:{client_ip(request)}"
    return f"{NAMESPACE}:{key}" if NAMESPACE else key


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance
# ──────────────────────────────────────────────────────────────
def _default_limits() -> List[str]:
    raw = settings.DEFAULT_RATE_LIMIT or "120/minute"
    return [chunk.strip() for chunk in raw.split(",") if chunk.strip()]


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=_default_limits(),
    storage_uri=settings.RATELIMIT_STORAGE_URI or "memory://",
    headers_enabled=False,
    enabled=not _test_bypass(),
)


def rate_limit_exempt() -> Callable:
    """Explicitly exempt a route from limiting."""
    return limiter.exempt


def install_rate_limiter(app) -> Optional[Limiter]:
    """Attach SlowAPI middleware unless disabled by env."""
    if not _enabled():
        logger.info("RateLimiter disabled by env; middleware not installed")
        return None
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    logger.info("SlowAPI middleware installed | default={}", _default_limits())
    return limiter


__all__ = ["limiter", "rate_limit_key", "client_ip", "rate_limit_exempt", "install_rate_limiter"]
