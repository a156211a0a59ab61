"""
🧭 StreamGate • API v1 Router Aggregator
=======================================

Exports the **combined `router`** and a `build_v1_router()` factory.

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Security notes
--------------
- This layer is a pure aggregator; **auth lives in child routers** and rate
  limits are applied globally by the SlowAPI middleware.
"""

from fastapi import APIRouter

from .browse import router as browse_router
from .playback import router as playback_router
from .progress import router as progress_router
from .subscriptions import router as subscriptions_router


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Factory: build a combined v1 router with stable path layout
# ─────────────────────────────────────────────────────────────────────────────
def build_v1_router() -> APIRouter:
    """
    Compose the API v1 surface into a single `APIRouter`.

    Includes
    --------
      • Browse (`/series/{id}/episodes`)
      • Playback (`/episodes/{id}/playback-grant`, `/episodes/{id}/next`)
      • Watch progress (`/watch-progress`, `/watch-progress/recent`)
      • Subscriptions (`/subscriptions/me`, `/subscriptions/plans`)
    """
    r = APIRouter()
    r.include_router(browse_router)
    r.include_router(playback_router)
    r.include_router(progress_router)
    r.include_router(subscriptions_router)
    return r


router = build_v1_router()

__all__ = [
    "build_v1_router",
    "router",
    "browse_router",
    "playback_router",
    "progress_router",
    "subscriptions_router",
]
