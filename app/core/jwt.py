# app/core/jwt.py
from __future__ import annotations

"""
StreamGate — JWT helpers
========================
- `decode_token` with optional issuer/audience enforcement
- Redis JTI revocation lane (`revoked:jti:{jti}`)
- Case-insensitive Bearer token extraction (optional for guest routes)
- `create_access_token` for internal tooling and tests

Notes
-----
- Login/registration are external; this service only *verifies* access tokens.
- No `leeway` is passed to python-jose (unsupported); standard `exp`/`nbf`/`iat`
  checks apply.
- If Redis is not configured the revocation lane is skipped.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4
import logging

from fastapi import Request
from jose import jwt, JWTError, ExpiredSignatureError
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import EngineUnavailable, Unauthenticated
from app.core.redis_client import redis_wrapper

logger = logging.getLogger("auth")


# ─────────────────────────────────────────────────────────────
# 🔧 Internal helpers
# ─────────────────────────────────────────────────────────────
async def _is_revoked(jti: str) -> bool:
    """Return True if the token with this JTI is revoked."""
    if not redis_wrapper.connected:
        return False
    try:
        return bool(await redis_wrapper.client.get(f"revoked:jti:{jti}"))
    except RedisError as e:
        logger.error("Redis unavailable during revocation check: %s", e)
        raise EngineUnavailable("Auth service temporarily unavailable") from e


# ─────────────────────────────────────────────────────────────
# 🔓 Decode JWT
# ─────────────────────────────────────────────────────────────
async def decode_token(token: str, *, verify_revocation: bool = True) -> Dict[str, Any]:
    """Decode and validate an access token.

    Security checks
    ---------------
    1) Verify signature and standard claims (exp/nbf/iat)
    2) Enforce issuer/audience when configured
    3) Require `sub` and `jti`
    4) Consult Redis revocation lane

    Raises
    ------
    Unauthenticated
        for invalid, expired or revoked tokens.
    EngineUnavailable
        if the revocation lane cannot be consulted.
    """
    audience = settings.JWT_AUDIENCE or None
    issuer = settings.JWT_ISSUER or None
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": bool(audience)},
            audience=audience,
            issuer=issuer,
        )
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise Unauthenticated("Token has expired")
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise Unauthenticated("Invalid token")

    if not payload.get("sub"):
        raise Unauthenticated("Token missing subject")
    jti = payload.get("jti")
    if not jti:
        raise Unauthenticated("Token missing JTI")

    if verify_revocation and await _is_revoked(jti):
        logger.warning("Token with JTI %s has been revoked.", jti)
        raise Unauthenticated("Token has been revoked")

    return payload


# ─────────────────────────────────────────────────────────────
# 📥 Bearer extraction
# ─────────────────────────────────────────────────────────────
def get_bearer_token(request: Request) -> Optional[str]:
    """Return the Bearer token, or None when the header is absent or malformed."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        logger.debug("Malformed Authorization header ignored")
        return None
    return parts[1].strip()


# ─────────────────────────────────────────────────────────────
# 🪪 Token minting (internal tooling / tests)
# ─────────────────────────────────────────────────────────────
def create_access_token(
    subject: str,
    *,
    expires_in: timedelta = timedelta(minutes=60),
    now: Optional[datetime] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": str(subject),
        "jti": uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
        "token_type": "access",
    }
    if settings.JWT_ISSUER:
        claims["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        claims["aud"] = settings.JWT_AUDIENCE
    claims.update(extra_claims or {})
    return jwt.encode(claims, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


__all__ = ["decode_token", "get_bearer_token", "create_access_token"]
