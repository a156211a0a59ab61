from __future__ import annotations

# ──────────────────────────────────────────────────────────────────────────────
# 📺 StreamGate — Series Browsing
# ──────────────────────────────────────────────────────────────────────────────
#  Endpoints
#   - GET /series/{series_id}/episodes → published episodes with `locked` flags
#
#  Notes
#   - `locked` comes from the same entitlement resolver as playback grants.
#   - The subscription state may be served from a short Redis cache here.
# ──────────────────────────────────────────────────────────────────────────────

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import JSONResponse

from app.api.http_utils import enforce_public_api_key, respond_json
from app.core.dependencies import get_optional_viewer_id, parse_resource_id
from app.repositories.catalog import get_catalog_repository
from app.schemas.playback import SeriesEpisodesOut
from app.services.listing import SeriesListing
from app.services.subscription_state import get_subscription_state_model

log = logging.getLogger(__name__)

router = APIRouter(
    tags=["Browse"],
    responses={
        400: {"description": "Malformed id"},
        404: {"description": "Series not found"},
        503: {"description": "Service unavailable"},
    },
)


@router.get(
    "/series/{series_id}/episodes",
    response_model=SeriesEpisodesOut,
    summary="List a series' episodes annotated for the caller",
)
async def list_series_episodes(
    request: Request,
    series_id: str = Path(..., min_length=1, max_length=64),
    viewer_id: Optional[str] = Depends(get_optional_viewer_id),
    _key=Depends(enforce_public_api_key),
) -> JSONResponse:
    """Return published episodes ordered by `order`, each with `locked`/`isFree`."""
    series_id = parse_resource_id(series_id, "series_id")
    state = await get_subscription_state_model().resolve_cached(viewer_id)
    series, episodes = await SeriesListing(get_catalog_repository()).list_episodes(series_id, state)

    body = SeriesEpisodesOut(series_id=series.id, series_title=series.title, episodes=episodes)
    return respond_json(body, request=request)
