# tests/test_subscriptions/test_state_model.py
from datetime import datetime, timedelta, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.exceptions import EngineUnavailable
from app.repositories import RepositoryUnavailable
from app.repositories.subscriptions import SubscriptionRepositoryProtocol
from app.schemas.enums import SubscriptionPlan, SubscriptionStatus
from app.services.subscription_state import SubscriptionStateModel, compute_renews_at

from tests.fixtures.world import NOW, VIEWER

pytestmark = pytest.mark.anyio


class _BrokenRepo(SubscriptionRepositoryProtocol):
    def __init__(self):
        self.calls = 0

    async def get_latest_subscription(self, viewer_id):
        self.calls += 1
        raise RepositoryUnavailable("db down")


class _CountingRepo(SubscriptionRepositoryProtocol):
    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    async def get_latest_subscription(self, viewer_id):
        self.calls += 1
        return await self.inner.get_latest_subscription(viewer_id)


# ─────────────────────────────────────────────────────────────────────────────
# renewsAt
# ─────────────────────────────────────────────────────────────────────────────

def test_renews_at_weekly_and_monthly():
    start = datetime(2026, 1, 1, 8, 30, tzinfo=timezone.utc)
    assert compute_renews_at(SubscriptionPlan.WEEKLY, start) == start + timedelta(days=7)
    assert compute_renews_at(SubscriptionPlan.MONTHLY, start) == start + timedelta(days=30)


async def test_stored_renews_at_is_ignored(world):
    start = NOW - timedelta(days=3)
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE, plan=SubscriptionPlan.WEEKLY, start=start)
    state = await world.state_model().resolve(VIEWER)
    assert state.renews_at == start + timedelta(days=7)


# ─────────────────────────────────────────────────────────────────────────────
# resolve
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("viewer_id", [None, ""])
async def test_anonymous_is_not_entitled(world, viewer_id):
    state = await world.state_model().resolve(viewer_id)
    assert state.is_entitled is False
    assert state.plan is None and state.status is None and state.renews_at is None


async def test_no_record_is_not_entitled(world):
    state = await world.state_model().resolve(VIEWER)
    assert state.is_entitled is False
    assert state.status is None


@pytest.mark.parametrize(
    "status,entitled",
    [
        (SubscriptionStatus.ACTIVE, True),
        (SubscriptionStatus.TRIAL, True),
        (SubscriptionStatus.PAST_DUE, False),
        (SubscriptionStatus.CANCELED, False),
        (SubscriptionStatus.EXPIRED, False),
    ],
)
async def test_entitlement_follows_status_only(world, status, entitled):
    world.subscribe(VIEWER, status)
    state = await world.state_model().resolve(VIEWER)
    assert state.is_entitled is entitled
    assert state.status == status


async def test_most_recent_record_wins(world):
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE, start=NOW - timedelta(days=40))
    world.subscribe(VIEWER, SubscriptionStatus.CANCELED, start=NOW - timedelta(days=2))
    world.subscribe(VIEWER, SubscriptionStatus.EXPIRED, start=NOW - timedelta(days=90))

    state = await world.state_model().resolve(VIEWER)
    assert state.status == SubscriptionStatus.CANCELED
    assert state.is_entitled is False


async def test_same_start_date_breaks_tie_on_created_at(world):
    start = NOW - timedelta(days=1)
    world.subscribe(VIEWER, SubscriptionStatus.TRIAL, start=start, created_at=start + timedelta(minutes=5))
    world.subscribe(VIEWER, SubscriptionStatus.CANCELED, start=start, created_at=start + timedelta(minutes=1))
    state = await world.state_model().resolve(VIEWER)
    assert state.status == SubscriptionStatus.TRIAL


async def test_lookup_failure_fails_closed_as_unavailable():
    model = SubscriptionStateModel(_BrokenRepo())
    with pytest.raises(EngineUnavailable) as ei:
        await model.resolve(VIEWER)
    assert ei.value.reason.value == "INTERNAL"


# ─────────────────────────────────────────────────────────────────────────────
# resolve_cached (listing path)
# ─────────────────────────────────────────────────────────────────────────────

async def test_cached_resolve_reads_store_once(world, redis_client):
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE)
    repo = _CountingRepo(world.subscriptions)
    model = SubscriptionStateModel(repo)

    first = await model.resolve_cached(VIEWER)
    second = await model.resolve_cached(VIEWER)

    assert first == second
    assert second.is_entitled is True
    assert repo.calls == 1
    assert f"substate:{VIEWER}" in redis_client.store


async def test_cache_disabled_with_zero_ttl(world):
    repo = _CountingRepo(world.subscriptions)
    model = SubscriptionStateModel(repo)
    await model.resolve_cached(VIEWER, ttl_seconds=0)
    await model.resolve_cached(VIEWER, ttl_seconds=0)
    assert repo.calls == 2


async def test_cache_errors_fall_back_to_fresh_read(world, redis_client):
    world.subscribe(VIEWER, SubscriptionStatus.TRIAL)
    redis_client.fail_with = RedisConnectionError("redis down")

    state = await world.state_model().resolve_cached(VIEWER)
    assert state.is_entitled is True


async def test_cached_anonymous_skips_redis(world, redis_client):
    state = await world.state_model().resolve_cached(None)
    assert state.is_entitled is False
    assert redis_client.store == {}


async def test_playback_resolve_never_reads_cache(world, redis_client):
    # a stale cached "entitled" state must not leak into a fresh resolve
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE)
    model = world.state_model()
    await model.resolve_cached(VIEWER)

    world.subscriptions.records.clear()
    world.subscribe(VIEWER, SubscriptionStatus.CANCELED)

    assert (await model.resolve_cached(VIEWER)).is_entitled is True
    assert (await model.resolve(VIEWER)).is_entitled is False
