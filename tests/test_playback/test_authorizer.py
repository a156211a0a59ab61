# tests/test_playback/test_authorizer.py
from datetime import timedelta

import pytest

from app.core.exceptions import EngineUnavailable, PlaybackDenied, Unauthenticated
from app.repositories import RepositoryUnavailable
from app.repositories.catalog import VideoAssetRecord
from app.schemas.enums import AssetStatus, DecisionReason, ReasonCode, SubscriptionStatus
from app.services.signing import SigningError, verify_signed_url

from tests.fixtures.world import NOW, OTHER_VIEWER, VIEWER, asset_id, episode_id

pytestmark = pytest.mark.anyio


class _FailingSigner:
    def sign(self, storage_key, *, ttl_seconds, now=None):
        raise SigningError("kms down")


class _FlakyCatalog:
    """Delegates to a real catalog but fails one method."""

    def __init__(self, inner, failing: str):
        self._inner = inner
        self._failing = failing

    def __getattr__(self, name):
        if name == self._failing:
            async def _boom(*a, **k):
                raise RepositoryUnavailable("db down")
            return _boom
        return getattr(self._inner, name)


# ─────────────────────────────────────────────────────────────────────────────
# Scenarios
# ─────────────────────────────────────────────────────────────────────────────

async def test_free_episode_for_anonymous_gets_grant(world):
    grant = await world.authorizer().authorize(None, episode_id(1))
    assert grant.reason == DecisionReason.FREE_TIER
    assert grant.expires_in_seconds == 300
    assert grant.url.startswith("/media/series/night-shift/ep1.m3u8?")


async def test_gated_episode_for_anonymous_is_unauthenticated(world):
    with pytest.raises(Unauthenticated) as ei:
        await world.authorizer().authorize(None, episode_id(3))
    assert ei.value.reason == ReasonCode.UNAUTHENTICATED
    assert ei.value.status_code == 401


async def test_gated_episode_for_canceled_viewer_is_forbidden(world):
    world.subscribe(VIEWER, SubscriptionStatus.CANCELED)
    with pytest.raises(PlaybackDenied) as ei:
        await world.authorizer().authorize(VIEWER, episode_id(3))
    assert ei.value.reason == ReasonCode.FORBIDDEN_NOT_SUBSCRIBED
    assert ei.value.status_code == 403


async def test_gated_episode_for_viewer_without_subscription_is_forbidden(world):
    with pytest.raises(PlaybackDenied) as ei:
        await world.authorizer().authorize(OTHER_VIEWER, episode_id(4))
    assert ei.value.reason == ReasonCode.FORBIDDEN_NOT_SUBSCRIBED


async def test_trial_viewer_gets_300s_grant(world):
    world.subscribe(VIEWER, SubscriptionStatus.TRIAL)
    grant = await world.authorizer().authorize(VIEWER, episode_id(3))
    assert grant.reason == DecisionReason.SUBSCRIBED
    assert grant.expires_in_seconds == 300
    assert grant.expires_at == NOW + timedelta(seconds=300)


async def test_grant_url_is_verifiable_until_expiry(world):
    grant = await world.authorizer().authorize(None, episode_id(2))
    now = int(NOW.timestamp())
    assert verify_signed_url(grant.url, now=now + 299) == "/series/night-shift/ep2.m3u8"


# ─────────────────────────────────────────────────────────────────────────────
# Gate order
# ─────────────────────────────────────────────────────────────────────────────

async def test_unknown_episode_is_not_found(world):
    with pytest.raises(PlaybackDenied) as ei:
        await world.authorizer().authorize(VIEWER, "e0000000-0000-4000-8000-999999999999")
    assert ei.value.reason == ReasonCode.NOT_FOUND


async def test_draft_episode_is_not_found(world):
    with pytest.raises(PlaybackDenied) as ei:
        await world.authorizer().authorize(None, episode_id(7))
    assert ei.value.reason == ReasonCode.NOT_FOUND


async def test_episode_of_unpublished_series_is_not_found(world):
    with pytest.raises(PlaybackDenied) as ei:
        await world.authorizer().authorize(None, episode_id(8))
    assert ei.value.reason == ReasonCode.NOT_FOUND


async def test_missing_asset_is_reported_before_entitlement(world):
    # order 6 is gated, but the asset gate comes first even for guests
    with pytest.raises(PlaybackDenied) as ei:
        await world.authorizer().authorize(None, episode_id(6))
    assert ei.value.reason == ReasonCode.ASSET_UNAVAILABLE
    assert ei.value.status_code == 503


@pytest.mark.parametrize(
    "status,key",
    [(AssetStatus.PROCESSING, "x.m3u8"), (AssetStatus.FAILED, "x.m3u8"), (AssetStatus.READY, "  ")],
)
async def test_unplayable_asset_is_unavailable(world, status, key):
    world.catalog.add_asset(VideoAssetRecord(id=asset_id(1), status=status, storage_key=key))
    with pytest.raises(PlaybackDenied) as ei:
        await world.authorizer().authorize(None, episode_id(1))
    assert ei.value.reason == ReasonCode.ASSET_UNAVAILABLE


# ─────────────────────────────────────────────────────────────────────────────
# Principals
# ─────────────────────────────────────────────────────────────────────────────

async def test_denial_depends_only_on_whether_a_viewer_is_present(world):
    # the resolver sees the same non-entitled state; only the principal differs
    world.subscribe(VIEWER, SubscriptionStatus.EXPIRED)
    auth = world.authorizer()
    with pytest.raises(Unauthenticated):
        await auth.authorize(None, episode_id(5))
    with pytest.raises(PlaybackDenied) as ei:
        await auth.authorize(VIEWER, episode_id(5))
    assert ei.value.reason == ReasonCode.FORBIDDEN_NOT_SUBSCRIBED


# ─────────────────────────────────────────────────────────────────────────────
# Infrastructure failures are INTERNAL, never a policy denial
# ─────────────────────────────────────────────────────────────────────────────

async def test_signer_failure_is_internal(world):
    with pytest.raises(EngineUnavailable) as ei:
        await world.authorizer(signer=_FailingSigner()).authorize(None, episode_id(1))
    assert ei.value.reason == ReasonCode.INTERNAL
    assert not isinstance(ei.value, PlaybackDenied)


@pytest.mark.parametrize("failing", ["get_episode", "get_series_status", "get_video_asset"])
async def test_catalog_failure_is_internal(world, failing):
    world.catalog = _FlakyCatalog(world.catalog, failing)
    with pytest.raises(EngineUnavailable):
        await world.authorizer().authorize(None, episode_id(1))


async def test_subscription_store_failure_is_internal(world):
    class _Down:
        async def get_latest_subscription(self, viewer_id):
            raise RepositoryUnavailable("db down")

    world.subscriptions = _Down()
    with pytest.raises(EngineUnavailable) as ei:
        await world.authorizer().authorize(VIEWER, episode_id(3))
    assert ei.value.reason == ReasonCode.INTERNAL


# ─────────────────────────────────────────────────────────────────────────────
# Freshness
# ─────────────────────────────────────────────────────────────────────────────

async def test_each_request_reads_fresh_subscription_state(world):
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE, start=NOW - timedelta(days=5))
    auth = world.authorizer()
    grant = await auth.authorize(VIEWER, episode_id(3))

    # canceled after the grant: the next request is refused
    world.subscribe(VIEWER, SubscriptionStatus.CANCELED, start=NOW - timedelta(days=1))
    with pytest.raises(PlaybackDenied):
        await auth.authorize(VIEWER, episode_id(3))

    # the earlier grant stays valid for its remaining lifetime
    assert verify_signed_url(grant.url, now=int(NOW.timestamp()) + 120)
