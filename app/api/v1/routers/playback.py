from __future__ import annotations

# ──────────────────────────────────────────────────────────────────────────────
# 🎬 StreamGate — Playback Grants
# ──────────────────────────────────────────────────────────────────────────────
#  Endpoints
#   - GET /episodes/{episode_id}/playback-grant → short-lived signed stream URL
#   - GET /episodes/{episode_id}/next           → auto-advance candidate
#
#  Security & Ops
#   - Optional Bearer auth: guests may play the free tier only.
#   - Optional public API key enforcement (`X-API-Key`).
#   - Responses are `no-store`; grants are never cached by intermediaries.
#   - Correlation headers (`x-request-id`, `traceparent`) are echoed.
# ──────────────────────────────────────────────────────────────────────────────

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import JSONResponse

from app.api.http_utils import enforce_public_api_key, respond_json
from app.core.dependencies import get_optional_viewer_id, parse_resource_id
from app.schemas.playback import NextEpisodeOut, PlaybackGrantOut
from app.services.playback import get_playback_authorizer
from app.services.subscription_state import get_subscription_state_model
from app.services.watch_progress import get_watch_progress_tracker

log = logging.getLogger(__name__)

router = APIRouter(
    tags=["Playback"],
    responses={
        400: {"description": "Malformed id"},
        401: {"description": "Sign-in required"},
        403: {"description": "Subscription required"},
        404: {"description": "Not found"},
        503: {"description": "Asset or service unavailable"},
    },
)


@router.get(
    "/episodes/{episode_id}/playback-grant",
    response_model=PlaybackGrantOut,
    summary="Authorize playback and issue a signed stream URL",
)
async def get_playback_grant(
    request: Request,
    episode_id: str = Path(..., min_length=1, max_length=64),
    viewer_id: Optional[str] = Depends(get_optional_viewer_id),
    _key=Depends(enforce_public_api_key),
) -> JSONResponse:
    """Issue a playback grant for one episode.

    Steps
    -----
    1) Validate the episode id (400 on malformed ids)
    2) Run the authorization gates (published → asset ready → entitlement)
    3) Return `{url, expiresInSeconds, expiresAt}` with `no-store`

    Denials surface as problem+json with a machine-readable `reason`.
    """
    episode_id = parse_resource_id(episode_id, "episode_id")
    authorizer = get_playback_authorizer()
    grant = await authorizer.authorize(viewer_id, episode_id)

    body = PlaybackGrantOut(
        url=grant.url,
        expires_in_seconds=grant.expires_in_seconds,
        expires_at=grant.expires_at,
    )
    return respond_json(body, request=request)


@router.get(
    "/episodes/{episode_id}/next",
    response_model=NextEpisodeOut,
    summary="Next published episode in the same series",
)
async def get_next_episode(
    request: Request,
    episode_id: str = Path(..., min_length=1, max_length=64),
    viewer_id: Optional[str] = Depends(get_optional_viewer_id),
    _key=Depends(enforce_public_api_key),
) -> JSONResponse:
    """Return the episode that follows `episode_id`, annotated with `locked`.

    The subscription state is read fresh so that the `locked` flag matches
    what a playback-grant request made right after would decide.
    """
    episode_id = parse_resource_id(episode_id, "episode_id")
    state = await get_subscription_state_model().resolve(viewer_id)
    nxt = await get_watch_progress_tracker().next_episode(episode_id, state)
    return respond_json(NextEpisodeOut(has_next=nxt is not None, episode=nxt), request=request)
