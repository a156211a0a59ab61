from __future__ import annotations

"""
Free-tier listing annotator.

Marks every episode of a listing with `locked = not decide(...).allowed`,
using the same resolver as playback authorization. The flag is advisory UI
state; authorization always re-decides with a fresh subscription state.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from app.core.config import FREE_EPISODE_THRESHOLD
from app.core.exceptions import EngineUnavailable, PlaybackDenied
from app.repositories import RepositoryUnavailable
from app.repositories.catalog import CatalogRepositoryProtocol, EpisodeRecord, SeriesRecord
from app.schemas.enums import ContentStatus, ReasonCode
from app.schemas.playback import AnnotatedEpisode, SubscriptionState
from app.services.entitlement import decide, is_free_episode

logger = logging.getLogger(__name__)


def annotate_episode(
    episode: EpisodeRecord,
    state: Optional[SubscriptionState],
    *,
    threshold: int = FREE_EPISODE_THRESHOLD,
) -> AnnotatedEpisode:
    decision = decide(episode, state, threshold=threshold)
    return AnnotatedEpisode(
        id=episode.id,
        series_id=episode.series_id,
        order=episode.order,
        title=episode.title,
        duration_seconds=episode.duration_seconds,
        thumbnail_url=episode.thumbnail_url,
        is_free=is_free_episode(episode.order, threshold=threshold),
        locked=not decision.allowed,
        reason=decision.reason,
    )


def annotate(
    episodes: Iterable[EpisodeRecord],
    state: Optional[SubscriptionState],
    *,
    threshold: int = FREE_EPISODE_THRESHOLD,
) -> List[AnnotatedEpisode]:
    return [annotate_episode(e, state, threshold=threshold) for e in episodes]


class SeriesListing:
    """Published episodes of a published series, annotated for one viewer."""

    def __init__(self, catalog: CatalogRepositoryProtocol, *, threshold: int = FREE_EPISODE_THRESHOLD) -> None:
        self._catalog = catalog
        self._threshold = threshold

    async def list_episodes(
        self, series_id: str, state: Optional[SubscriptionState]
    ) -> Tuple[SeriesRecord, List[AnnotatedEpisode]]:
        try:
            series = await self._catalog.get_series(series_id)
            if series is None or series.status != ContentStatus.PUBLISHED:
                raise PlaybackDenied(ReasonCode.NOT_FOUND, "Series not found")
            episodes = await self._catalog.list_episodes(series_id, published_only=True)
        except RepositoryUnavailable as e:
            logger.error("Series listing failed: %s", e)
            raise EngineUnavailable() from e
        return series, annotate(episodes, state, threshold=self._threshold)


__all__ = ["annotate", "annotate_episode", "SeriesListing"]
