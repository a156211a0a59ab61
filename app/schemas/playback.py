from __future__ import annotations

"""Public request/response schemas for playback, progress and listings.

Wire format is camelCase (`expiresInSeconds`); Python attributes stay
snake_case. Routers serialize with `model_dump(by_alias=True)`.
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt
from pydantic.alias_generators import to_camel

from app.schemas.enums import DecisionReason, SubscriptionPlan, SubscriptionStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Subscription ─────────────────────────────────────────────
class SubscriptionState(CamelModel):
    """Resolved subscription view for a viewer; `is_entitled` follows `status` only."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    is_entitled: bool = False
    plan: Optional[SubscriptionPlan] = None
    status: Optional[SubscriptionStatus] = None
    renews_at: Optional[datetime] = None


class PlanOut(CamelModel):
    plan: SubscriptionPlan
    duration_days: int
    price: int


# ── Playback ─────────────────────────────────────────────────
class PlaybackGrantOut(CamelModel):
    url: str
    expires_in_seconds: int
    expires_at: datetime


# ── Watch progress ───────────────────────────────────────────
class WatchProgressIn(CamelModel):
    """Progress report from the player.

    The sign of `progress_seconds` is checked by the tracker so that negative
    values map to `INVALID_INPUT` in exactly one place.
    """

    episode_id: str = Field(..., min_length=1, max_length=64)
    progress_seconds: Union[StrictInt, StrictFloat]
    completed: StrictBool = False


class WatchProgressOut(CamelModel):
    episode_id: str
    progress_seconds: float
    completed: bool
    last_watched_at: datetime


class ContinueWatchingItem(CamelModel):
    episode_id: str
    episode_title: str
    episode_order: int
    series_id: str
    series_title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    progress_seconds: float
    completed: bool
    last_watched_at: datetime


# ── Listings ─────────────────────────────────────────────────
class AnnotatedEpisode(CamelModel):
    id: str
    series_id: str
    order: int
    title: str
    duration_seconds: Optional[int] = None
    thumbnail_url: Optional[str] = None
    is_free: bool
    locked: bool
    reason: DecisionReason


class SeriesEpisodesOut(CamelModel):
    series_id: str
    series_title: str
    episodes: List[AnnotatedEpisode]


class NextEpisodeOut(CamelModel):
    has_next: bool
    episode: Optional[AnnotatedEpisode] = None
