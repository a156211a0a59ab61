from __future__ import annotations

"""
StreamGate · HTTP Utilities
===========================

Shared helpers for API routers:

- Public API key enforcement (header/query, rotation & hashed support)
- No-store JSON helper (grants and progress must never be cached)
- Correlation header echo

Notes
-----
• Rate limiting is global (SlowAPI middleware, see `app.core.limiter`).
• Dependency functions return `None` on success or raise on failure.
"""

import hashlib
import hmac
import os
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

__all__ = [
    "enforce_public_api_key",
    "json_no_store",
    "respond_json",
]


# ─────────────────────────────────────────────────────────────────────────────
# 🔑 Public API Key Enforcement
# ─────────────────────────────────────────────────────────────────────────────

def _compare_ct(a: str, b: str) -> bool:
    """Constant-time string comparison to resist timing attacks."""
    return hmac.compare_digest(str(a), str(b))


def enforce_public_api_key(request: Request) -> None:
    """Optionally require a public API key from first-party clients.

    Allowed sources (checked in order):
      1) ``X-API-Key`` header
      2) ``api_key`` query parameter

    ``PUBLIC_API_KEY`` may hold a comma-separated list (rotation);
    ``PUBLIC_API_KEY_SHA256`` may hold hex digests instead of raw keys.
    With neither set the check is a no-op.
    """
    keys = [k.strip() for k in os.environ.get("PUBLIC_API_KEY", "").split(",") if k.strip()]
    hashes = [h.strip().lower() for h in os.environ.get("PUBLIC_API_KEY_SHA256", "").split(",") if h.strip()]
    if not keys and not hashes:
        return

    provided = request.headers.get("x-api-key") or request.query_params.get("api_key")
    if not provided:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key")

    if any(_compare_ct(provided, k) for k in keys):
        return
    if hashes:
        candidate = hashlib.sha256(provided.encode("utf-8")).hexdigest()
        if any(_compare_ct(candidate, h) for h in hashes):
            return
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key")


# ─────────────────────────────────────────────────────────────────────────────
# 🧳 No-store JSON helper
# ─────────────────────────────────────────────────────────────────────────────

def json_no_store(payload: Any, status_code: int = 200) -> JSONResponse:
    """JSON response with strict `no-store` caching; pydantic models dump by alias."""
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(by_alias=True, mode="json")
    resp = JSONResponse(content=jsonable_encoder(payload), status_code=status_code)
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"
    return resp


def respond_json(payload: Any, *, request: Request, status_code: int = 200) -> JSONResponse:
    """`json_no_store` plus echoed correlation headers."""
    resp = json_no_store(payload, status_code=status_code)
    for h in ("x-request-id", "traceparent"):
        if h in request.headers:
            resp.headers[h] = request.headers[h]
    return resp
