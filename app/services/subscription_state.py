from __future__ import annotations

"""
Subscription state model.

Turns the most recent subscription record of a viewer into a
`SubscriptionState`:

- no viewer / no record      -> not entitled
- status in {active, trial}  -> entitled (status is the only input)
- `renews_at` recomputed from plan + start date (weekly 7d, monthly 30d);
  the stored column is ignored.

Lookup failures fail closed as `EngineUnavailable` so callers can tell "the
store is down" apart from "this viewer has no subscription".

`resolve_cached` is the listing-path variant: it keeps the state in Redis for
a short TTL. Playback authorization never uses it.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from redis.exceptions import RedisError

from app.core.config import PLAN_DURATION_DAYS, settings
from app.core.exceptions import EngineUnavailable
from app.core.metrics import inc_subscription_cache
from app.core.redis_client import redis_wrapper
from app.repositories import RepositoryUnavailable
from app.repositories.subscriptions import SubscriptionRecord, SubscriptionRepositoryProtocol
from app.schemas.enums import ENTITLING_STATUSES, SubscriptionPlan
from app.schemas.playback import SubscriptionState

logger = logging.getLogger(__name__)

ANONYMOUS_STATE = SubscriptionState(is_entitled=False)
_CACHE_PREFIX = "substate:"


def compute_renews_at(
    plan: SubscriptionPlan,
    start_date: datetime,
    *,
    durations: Optional[Dict[str, int]] = None,
) -> datetime:
    days = (durations or PLAN_DURATION_DAYS)[SubscriptionPlan(plan).value]
    return start_date + timedelta(days=days)


def state_from_record(record: Optional[SubscriptionRecord]) -> SubscriptionState:
    if record is None:
        return SubscriptionState(is_entitled=False)
    return SubscriptionState(
        is_entitled=record.status in ENTITLING_STATUSES,
        plan=record.plan,
        status=record.status,
        renews_at=compute_renews_at(record.plan, record.start_date),
    )


class SubscriptionStateModel:
    def __init__(self, repo: SubscriptionRepositoryProtocol) -> None:
        self._repo = repo

    async def resolve(self, viewer_id: Optional[str]) -> SubscriptionState:
        """Read-only; raises `EngineUnavailable` when the store cannot answer."""
        if not viewer_id:
            return ANONYMOUS_STATE
        try:
            record = await self._repo.get_latest_subscription(viewer_id)
        except RepositoryUnavailable as e:
            logger.error("Subscription lookup failed for viewer: %s", e)
            raise EngineUnavailable("Subscription state temporarily unavailable") from e
        return state_from_record(record)

    async def resolve_cached(self, viewer_id: Optional[str], *, ttl_seconds: Optional[int] = None) -> SubscriptionState:
        """Listing-path resolve with a short Redis cache; cache errors fall back to a fresh read."""
        if not viewer_id:
            return ANONYMOUS_STATE
        ttl = settings.SUBSCRIPTION_STATE_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        if ttl <= 0 or not redis_wrapper.connected:
            return await self.resolve(viewer_id)

        key = f"{_CACHE_PREFIX}{viewer_id}"
        try:
            cached = await redis_wrapper.json_get(key)
        except RedisError as e:
            logger.warning("Subscription cache read failed; resolving fresh: %s", e)
            cached = None
        if cached is not None:
            inc_subscription_cache("hit")
            return SubscriptionState.model_validate(cached)

        inc_subscription_cache("miss")
        state = await self.resolve(viewer_id)
        try:
            await redis_wrapper.json_set(key, state.model_dump(mode="json"), ttl_seconds=ttl)
        except RedisError as e:
            logger.warning("Subscription cache write failed: %s", e)
        return state


def get_subscription_state_model() -> SubscriptionStateModel:
    from app.repositories.subscriptions import get_subscription_repository

    return SubscriptionStateModel(get_subscription_repository())


__all__ = [
    "ANONYMOUS_STATE",
    "compute_renews_at",
    "state_from_record",
    "SubscriptionStateModel",
    "get_subscription_state_model",
]
