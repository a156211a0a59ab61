from __future__ import annotations

# ──────────────────────────────────────────────────────────────────────────────
# ⏱️ StreamGate — Watch Progress
# ──────────────────────────────────────────────────────────────────────────────
#  Endpoints
#   - POST /watch-progress          → upsert position for (viewer, episode)
#   - GET  /watch-progress/recent   → "continue watching" rail
#
#  Notes
#   - Authenticated viewers only (401 otherwise).
#   - Repeated reports for the same episode overwrite the previous position.
# ──────────────────────────────────────────────────────────────────────────────

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.api.http_utils import enforce_public_api_key, respond_json
from app.core.dependencies import parse_resource_id, require_viewer_id
from app.schemas.playback import ContinueWatchingItem, WatchProgressIn, WatchProgressOut
from app.services.watch_progress import MAX_RECENT_LIMIT, get_watch_progress_tracker

log = logging.getLogger(__name__)

router = APIRouter(
    tags=["Watch Progress"],
    responses={
        400: {"description": "Invalid input"},
        401: {"description": "Sign-in required"},
        503: {"description": "Service unavailable"},
    },
)


@router.post("/watch-progress", response_model=WatchProgressOut, summary="Record watch progress")
async def record_watch_progress(
    payload: WatchProgressIn,
    request: Request,
    viewer_id: str = Depends(require_viewer_id),
    _key=Depends(enforce_public_api_key),
) -> JSONResponse:
    """Record the viewer's position in an episode.

    Steps
    -----
    1) Require an active, signed-in viewer
    2) Validate `episodeId` and a non-negative `progressSeconds`
    3) Single upsert keyed on (viewer, episode); `lastWatchedAt` is server time
    """
    episode_id = parse_resource_id(payload.episode_id, "episodeId")
    record = await get_watch_progress_tracker().record(
        viewer_id, episode_id, payload.progress_seconds, payload.completed
    )
    body = WatchProgressOut(
        episode_id=record.episode_id,
        progress_seconds=record.progress_seconds,
        completed=record.completed,
        last_watched_at=record.last_watched_at,
    )
    return respond_json(body, request=request)


@router.get(
    "/watch-progress/recent",
    response_model=List[ContinueWatchingItem],
    summary="Recently watched episodes",
)
async def list_recent_progress(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=MAX_RECENT_LIMIT),
    viewer_id: str = Depends(require_viewer_id),
    _key=Depends(enforce_public_api_key),
) -> JSONResponse:
    """Most recently watched episodes first, joined with episode and series metadata."""
    items = await get_watch_progress_tracker().list_recent(viewer_id, limit)
    return respond_json([i.model_dump(by_alias=True, mode="json") for i in items], request=request)
