# app/core/dependencies.py
from __future__ import annotations

"""
Request dependencies — StreamGate
=================================

Viewer resolution for public endpoints.

Highlights
----------
- Delegates **Bearer parsing** and **JWT decoding** to `app.core.jwt`.
- `get_optional_viewer_id`: guests are first-class. A missing or invalid token
  yields `None` (guest), mirroring optional-auth semantics of the player.
- Only **active** accounts count as authenticated principals; suspended or
  banned viewers, and viewers unknown to the identity store, become guests.
- `require_viewer_id`: same resolution, but a guest gets `401 UNAUTHENTICATED`.
- `parse_resource_id`: malformed path ids are `400 INVALID_INPUT`.
"""

from typing import Optional
from uuid import UUID
import logging

from fastapi import Depends, Request

from app.core.exceptions import EngineUnavailable, InvalidInput, Unauthenticated
from app.core.jwt import decode_token, get_bearer_token
from app.repositories import RepositoryUnavailable
from app.repositories.identity import IdentityRepositoryProtocol, get_identity_repository
from app.schemas.enums import AccountStatus

logger = logging.getLogger(__name__)

__all__ = [
    "parse_resource_id",
    "resolve_principal",
    "get_optional_viewer_id",
    "require_viewer_id",
]


# ──────────────────────────────────────────────────────────────
# 🔧 Utility: id parsing
# ──────────────────────────────────────────────────────────────
def parse_resource_id(value: str, field_name: str) -> str:
    """Validate a UUID path/body id and return its canonical string form."""
    try:
        return str(UUID(str(value)))
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {field_name}", details={"field": field_name})


# ──────────────────────────────────────────────────────────────
# 👤 Principal resolution
# ──────────────────────────────────────────────────────────────
async def resolve_principal(identity: IdentityRepositoryProtocol, viewer_id: Optional[str]) -> Optional[str]:
    """Return `viewer_id` only when the account is active; otherwise None."""
    if not viewer_id:
        return None
    try:
        status = await identity.get_viewer_status(viewer_id)
    except RepositoryUnavailable as e:
        logger.error("Identity lookup failed: %s", e)
        raise EngineUnavailable("Identity service temporarily unavailable") from e
    if status != AccountStatus.ACTIVE:
        logger.info("Non-active account treated as guest (status=%s)", status.value if status else "unknown")
        return None
    return viewer_id


async def get_optional_viewer_id(
    request: Request,
    identity: IdentityRepositoryProtocol = Depends(get_identity_repository),
) -> Optional[str]:
    """Authenticated, active viewer id or None for guests."""
    token = get_bearer_token(request)
    if not token:
        return None
    try:
        payload = await decode_token(token)
    except Unauthenticated:
        # invalid or expired tokens browse as guests
        return None

    viewer_id = await resolve_principal(identity, str(payload["sub"]))
    request.state.viewer_id = viewer_id
    return viewer_id


async def require_viewer_id(viewer_id: Optional[str] = Depends(get_optional_viewer_id)) -> str:
    if not viewer_id:
        raise Unauthenticated()
    return viewer_id
