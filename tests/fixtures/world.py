from __future__ import annotations

"""
In-memory "world" for service and router tests.

One published series with episodes 1..5 (ready assets), episode 6 published
without an asset, episode 7 still a draft. Viewers of every account status are
registered; subscriptions are added per test with `world.subscribe(...)`.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest

from app.repositories.catalog import EpisodeRecord, MemoryCatalogRepository, SeriesRecord, VideoAssetRecord
from app.repositories.identity import MemoryIdentityRepository
from app.repositories.subscriptions import MemorySubscriptionRepository, SubscriptionRecord
from app.repositories.watch_progress import MemoryWatchProgressRepository
from app.schemas.enums import AccountStatus, AssetStatus, ContentStatus, SubscriptionPlan, SubscriptionStatus
from app.services.listing import SeriesListing
from app.services.playback import PlaybackAuthorizer
from app.services.signing import HmacUrlSigner
from app.services.subscription_state import SubscriptionStateModel
from app.services.watch_progress import WatchProgressTracker

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)

SERIES_ID = "5e000000-0000-4000-8000-000000000001"
DRAFT_SERIES_ID = "5e000000-0000-4000-8000-000000000002"

VIEWER = "0a000000-0000-4000-8000-000000000001"
OTHER_VIEWER = "0a000000-0000-4000-8000-000000000002"
SUSPENDED_VIEWER = "0a000000-0000-4000-8000-000000000003"
BANNED_VIEWER = "0a000000-0000-4000-8000-000000000004"


def episode_id(order: int) -> str:
    return f"e0000000-0000-4000-8000-{order:012d}"


def asset_id(order: int) -> str:
    return f"a0000000-0000-4000-8000-{order:012d}"


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class World:
    catalog: MemoryCatalogRepository = field(default_factory=MemoryCatalogRepository)
    subscriptions: MemorySubscriptionRepository = field(default_factory=MemorySubscriptionRepository)
    identity: MemoryIdentityRepository = field(default_factory=MemoryIdentityRepository)
    progress: MemoryWatchProgressRepository = field(default_factory=MemoryWatchProgressRepository)
    clock: FixedClock = field(default_factory=FixedClock)

    def subscribe(
        self,
        viewer_id: str,
        status: SubscriptionStatus,
        *,
        plan: SubscriptionPlan = SubscriptionPlan.MONTHLY,
        start: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> SubscriptionRecord:
        return self.subscriptions.add(
            SubscriptionRecord(
                viewer_id=viewer_id,
                plan=plan,
                status=status,
                start_date=start or NOW - timedelta(days=1),
                created_at=created_at,
                amount=199 if plan == SubscriptionPlan.MONTHLY else 99,
            )
        )

    def state_model(self) -> SubscriptionStateModel:
        return SubscriptionStateModel(self.subscriptions)

    def authorizer(self, *, signer=None, clock: Optional[Callable[[], datetime]] = None) -> PlaybackAuthorizer:
        return PlaybackAuthorizer(
            catalog=self.catalog,
            subscriptions=self.state_model(),
            signer=signer or HmacUrlSigner(),
            ttl_seconds=300,
            clock=clock or self.clock,
        )

    def tracker(self) -> WatchProgressTracker:
        return WatchProgressTracker(repo=self.progress, catalog=self.catalog, clock=self.clock)

    def listing(self) -> SeriesListing:
        return SeriesListing(self.catalog)


def build_world() -> World:
    w = World()
    w.catalog.add_series(SeriesRecord(id=SERIES_ID, title="Night Shift", status=ContentStatus.PUBLISHED))
    w.catalog.add_series(SeriesRecord(id=DRAFT_SERIES_ID, title="Coming Soon", status=ContentStatus.DRAFT))

    for order in range(1, 6):
        w.catalog.add_asset(
            VideoAssetRecord(id=asset_id(order), status=AssetStatus.READY, storage_key=f"series/night-shift/ep{order}.m3u8")
        )
        w.catalog.add_episode(
            EpisodeRecord(
                id=episode_id(order),
                series_id=SERIES_ID,
                order=order,
                title=f"Episode {order}",
                status=ContentStatus.PUBLISHED,
                video_asset_id=asset_id(order),
                duration_seconds=1500,
            )
        )
    # published, but the upload never finished
    w.catalog.add_episode(
        EpisodeRecord(id=episode_id(6), series_id=SERIES_ID, order=6, title="Episode 6", status=ContentStatus.PUBLISHED)
    )
    w.catalog.add_episode(
        EpisodeRecord(
            id=episode_id(7),
            series_id=SERIES_ID,
            order=7,
            title="Episode 7",
            status=ContentStatus.DRAFT,
            video_asset_id=asset_id(1),
        )
    )
    # episode of an unpublished series
    w.catalog.add_episode(
        EpisodeRecord(
            id=episode_id(8),
            series_id=DRAFT_SERIES_ID,
            order=1,
            title="Pilot",
            status=ContentStatus.PUBLISHED,
            video_asset_id=asset_id(1),
        )
    )

    w.identity.set_status(VIEWER, AccountStatus.ACTIVE)
    w.identity.set_status(OTHER_VIEWER, AccountStatus.ACTIVE)
    w.identity.set_status(SUSPENDED_VIEWER, AccountStatus.SUSPENDED)
    w.identity.set_status(BANNED_VIEWER, AccountStatus.BANNED)
    return w


@pytest.fixture
def world() -> World:
    return build_world()


__all__ = [
    "NOW",
    "SERIES_ID",
    "DRAFT_SERIES_ID",
    "VIEWER",
    "OTHER_VIEWER",
    "SUSPENDED_VIEWER",
    "BANNED_VIEWER",
    "episode_id",
    "asset_id",
    "FixedClock",
    "World",
    "build_world",
    "world",
]
