from __future__ import annotations

"""
Playback authorization.

`PlaybackAuthorizer.authorize(viewer_id, episode_id)` runs the gates in a
fixed order; the first failing gate decides the outcome:

1. episode missing / episode or series not published  -> NOT_FOUND
2. asset missing / not ready / no storage key         -> ASSET_UNAVAILABLE
3. fresh subscription state (never the listing cache)
4. entitlement decision; gated + guest                -> UNAUTHENTICATED
                          gated + signed-in viewer     -> FORBIDDEN_NOT_SUBSCRIBED
5. signed URL over the asset's storage key (TTL from settings)

Policy outcomes raise `PlaybackDenied`; storage and signer failures raise
`EngineUnavailable`. The two are never converted into one another.

A grant stays valid for its whole TTL even if the subscription is canceled
meanwhile; nothing here caches or reuses grants.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

from app.core.config import FREE_EPISODE_THRESHOLD, settings
from app.core.exceptions import EngineUnavailable, PlaybackDenied, Unauthenticated
from app.core.metrics import inc_denial, inc_grant, observe_signing_seconds
from app.repositories import RepositoryUnavailable
from app.repositories.catalog import CatalogRepositoryProtocol, EpisodeRecord, VideoAssetRecord
from app.schemas.enums import ContentStatus, DecisionReason, ReasonCode
from app.services.entitlement import decide
from app.services.signing import SigningError
from app.services.subscription_state import SubscriptionStateModel
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaybackGrant:
    episode_id: str
    url: str
    expires_in_seconds: int
    expires_at: datetime
    reason: DecisionReason


@contextmanager
def _infrastructure(step: str) -> Iterator[None]:
    try:
        yield
    except RepositoryUnavailable as e:
        logger.error("Playback authorization failed at %s: %s", step, e)
        inc_denial(ReasonCode.INTERNAL.value)
        raise EngineUnavailable() from e


def _deny(reason: ReasonCode) -> PlaybackDenied:
    inc_denial(reason.value)
    if reason == ReasonCode.UNAUTHENTICATED:
        return Unauthenticated()
    return PlaybackDenied(reason)


class PlaybackAuthorizer:
    def __init__(
        self,
        *,
        catalog: CatalogRepositoryProtocol,
        subscriptions: SubscriptionStateModel,
        signer,
        ttl_seconds: Optional[int] = None,
        threshold: int = FREE_EPISODE_THRESHOLD,
        clock: Clock = utcnow,
    ) -> None:
        self._catalog = catalog
        self._subscriptions = subscriptions
        self._signer = signer
        self._ttl = int(ttl_seconds if ttl_seconds is not None else settings.PLAYBACK_GRANT_TTL_SECONDS)
        self._threshold = threshold
        self._clock = clock

    async def _published_episode(self, episode_id: str) -> EpisodeRecord:
        with _infrastructure("catalog"):
            episode = await self._catalog.get_episode(episode_id)
            if episode is None or episode.status != ContentStatus.PUBLISHED:
                raise _deny(ReasonCode.NOT_FOUND)
            series_status = await self._catalog.get_series_status(episode.series_id)
        if series_status != ContentStatus.PUBLISHED:
            raise _deny(ReasonCode.NOT_FOUND)
        return episode

    async def _playable_asset(self, episode: EpisodeRecord) -> VideoAssetRecord:
        if not episode.video_asset_id:
            raise _deny(ReasonCode.ASSET_UNAVAILABLE)
        with _infrastructure("asset"):
            asset = await self._catalog.get_video_asset(episode.video_asset_id)
        if asset is None or not asset.is_playable:
            raise _deny(ReasonCode.ASSET_UNAVAILABLE)
        return asset

    def _sign(self, asset: VideoAssetRecord, now: datetime) -> tuple[str, int]:
        signer_name = type(self._signer).__name__
        started = time.perf_counter()
        try:
            signed = self._signer.sign(asset.storage_key, ttl_seconds=self._ttl, now=int(now.timestamp()))
        except SigningError as e:
            observe_signing_seconds(signer_name, "error", time.perf_counter() - started)
            logger.error("Signing failed for asset %s: %s", asset.id, e)
            inc_denial(ReasonCode.INTERNAL.value)
            raise EngineUnavailable() from e
        observe_signing_seconds(signer_name, "ok", time.perf_counter() - started)
        return signed.url, signed.expires_at

    async def authorize(self, viewer_id: Optional[str], episode_id: str) -> PlaybackGrant:
        """Return a grant or raise `PlaybackDenied` / `EngineUnavailable`."""
        episode = await self._published_episode(episode_id)
        asset = await self._playable_asset(episode)

        state = await self._subscriptions.resolve(viewer_id)
        decision = decide(episode, state, threshold=self._threshold)
        if not decision.allowed:
            reason = ReasonCode.UNAUTHENTICATED if not viewer_id else ReasonCode.FORBIDDEN_NOT_SUBSCRIBED
            logger.info("Playback denied episode=%s reason=%s", episode.id, reason.value)
            raise _deny(reason)

        now = self._clock()
        url, expires_at = self._sign(asset, now)
        inc_grant(decision.reason.value)
        logger.info("Playback granted episode=%s tier=%s ttl=%ss", episode.id, decision.reason.value, self._ttl)
        return PlaybackGrant(
            episode_id=episode.id,
            url=url,
            expires_in_seconds=self._ttl,
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
            reason=decision.reason,
        )


def get_playback_authorizer() -> PlaybackAuthorizer:
    from app.repositories.catalog import get_catalog_repository
    from app.services.signing import get_url_signer
    from app.services.subscription_state import get_subscription_state_model

    return PlaybackAuthorizer(
        catalog=get_catalog_repository(),
        subscriptions=get_subscription_state_model(),
        signer=get_url_signer(),
    )


__all__ = ["PlaybackGrant", "PlaybackAuthorizer", "get_playback_authorizer"]
