from __future__ import annotations

"""
Watch progress tracker.

- `record` validates the report and issues exactly one upsert keyed on
  (viewer, episode), stamping `last_watched_at` with the tracker's clock.
  Invalid input is rejected before any write. Only published episodes of
  published series accept progress.
- `list_recent` is the "continue watching" read model: progress rows joined
  with episode and series metadata through the catalog interface. It does
  not re-check entitlement; pressing play goes through authorization.
- `next_episode` is the auto-advance lookup after completion, annotated with
  the same resolver as listings.
"""

import logging
import math
from typing import List, Optional

from app.core.config import FREE_EPISODE_THRESHOLD, settings
from app.core.exceptions import EngineUnavailable, InvalidInput, PlaybackDenied, Unauthenticated
from app.core.metrics import inc_progress_upsert
from app.repositories import RepositoryUnavailable
from app.repositories.catalog import CatalogRepositoryProtocol, EpisodeRecord
from app.repositories.watch_progress import WatchProgressRecord, WatchProgressRepositoryProtocol
from app.schemas.enums import ContentStatus, ReasonCode
from app.schemas.playback import AnnotatedEpisode, ContinueWatchingItem, SubscriptionState
from app.services.listing import annotate_episode
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

MAX_RECENT_LIMIT = 50


def validate_progress(progress_seconds) -> float:
    if isinstance(progress_seconds, bool) or not isinstance(progress_seconds, (int, float)):
        raise InvalidInput("progressSeconds must be a number")
    try:
        value = float(progress_seconds)
    except OverflowError:
        raise InvalidInput("progressSeconds is out of range")
    if not math.isfinite(value) or value < 0:
        raise InvalidInput("progressSeconds must be a non-negative number")
    return value


class WatchProgressTracker:
    def __init__(
        self,
        *,
        repo: WatchProgressRepositoryProtocol,
        catalog: CatalogRepositoryProtocol,
        clock: Clock = utcnow,
        threshold: int = FREE_EPISODE_THRESHOLD,
    ) -> None:
        self._repo = repo
        self._catalog = catalog
        self._clock = clock
        self._threshold = threshold

    async def _published_episode(self, episode_id: str) -> EpisodeRecord:
        # drafts and episodes of unpublished series are invisible here, as in playback
        episode = await self._catalog.get_episode(episode_id)
        if episode is None or episode.status != ContentStatus.PUBLISHED:
            raise PlaybackDenied(ReasonCode.NOT_FOUND)
        if await self._catalog.get_series_status(episode.series_id) != ContentStatus.PUBLISHED:
            raise PlaybackDenied(ReasonCode.NOT_FOUND)
        return episode

    async def record(
        self,
        viewer_id: Optional[str],
        episode_id: str,
        progress_seconds,
        completed: bool,
    ) -> WatchProgressRecord:
        if not viewer_id:
            raise Unauthenticated("Sign in to save progress")
        value = validate_progress(progress_seconds)

        try:
            await self._published_episode(episode_id)
            record = await self._repo.upsert(
                viewer_id=viewer_id,
                episode_id=episode_id,
                progress_seconds=value,
                completed=bool(completed),
                watched_at=self._clock(),
            )
        except RepositoryUnavailable as e:
            inc_progress_upsert("error")
            logger.error("Progress write failed: %s", e)
            raise EngineUnavailable() from e

        inc_progress_upsert("ok")
        return record

    async def list_recent(self, viewer_id: Optional[str], limit: Optional[int] = None) -> List[ContinueWatchingItem]:
        if not viewer_id:
            raise Unauthenticated()
        limit = settings.RECENT_PROGRESS_DEFAULT_LIMIT if limit is None else limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_RECENT_LIMIT:
            raise InvalidInput(f"limit must be between 1 and {MAX_RECENT_LIMIT}")

        try:
            rows = await self._repo.list_recent(viewer_id, limit=limit)
            episodes = await self._catalog.get_episodes([r.episode_id for r in rows])
            series = await self._catalog.get_series_many({e.series_id for e in episodes.values()})
        except RepositoryUnavailable as e:
            logger.error("Continue-watching read failed: %s", e)
            raise EngineUnavailable() from e

        items: List[ContinueWatchingItem] = []
        for row in rows:
            episode = episodes.get(row.episode_id)
            if episode is None:
                # episode removed from the catalog since it was watched
                continue
            parent = series.get(episode.series_id)
            items.append(
                ContinueWatchingItem(
                    episode_id=episode.id,
                    episode_title=episode.title,
                    episode_order=episode.order,
                    series_id=episode.series_id,
                    series_title=parent.title if parent else None,
                    thumbnail_url=episode.thumbnail_url,
                    duration_seconds=episode.duration_seconds,
                    progress_seconds=row.progress_seconds,
                    completed=row.completed,
                    last_watched_at=row.last_watched_at,
                )
            )
        return items

    async def next_episode(self, episode_id: str, state: Optional[SubscriptionState]) -> Optional[AnnotatedEpisode]:
        """First published episode after `episode_id` in the same series, or None."""
        try:
            current = await self._published_episode(episode_id)
            siblings = await self._catalog.list_episodes(current.series_id, published_only=True)
        except RepositoryUnavailable as e:
            logger.error("Next-episode lookup failed: %s", e)
            raise EngineUnavailable() from e

        following = [e for e in siblings if e.order > current.order]
        if not following:
            return None
        return annotate_episode(min(following, key=lambda e: e.order), state, threshold=self._threshold)


def get_watch_progress_tracker() -> WatchProgressTracker:
    from app.repositories.catalog import get_catalog_repository
    from app.repositories.watch_progress import get_watch_progress_repository

    return WatchProgressTracker(repo=get_watch_progress_repository(), catalog=get_catalog_repository())


__all__ = ["validate_progress", "WatchProgressTracker", "get_watch_progress_tracker", "MAX_RECENT_LIMIT"]
