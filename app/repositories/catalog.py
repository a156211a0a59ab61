from __future__ import annotations

"""Catalog read repository.

Narrow read interface over series, episodes and video assets. Catalog CRUD,
search and uploads belong to other services; the engine only reads what it
needs to gate playback and to join metadata onto progress rows.

Implementations return frozen dataclass records, never ORM objects, so the
services stay storage-agnostic.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import Episode, Series, VideoAsset
from app.repositories import RepositoryUnavailable, as_uuid, build_from_env
from app.schemas.enums import AssetStatus, ContentStatus


# ─────────────────────────────────────────────────────────────
# Records
# ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class SeriesRecord:
    id: str
    title: str
    status: ContentStatus
    poster_url: Optional[str] = None


@dataclass(frozen=True)
class EpisodeRecord:
    id: str
    series_id: str
    order: int
    title: str
    status: ContentStatus
    video_asset_id: Optional[str] = None
    duration_seconds: Optional[int] = None
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class VideoAssetRecord:
    id: str
    status: AssetStatus
    storage_key: Optional[str] = None

    @property
    def is_playable(self) -> bool:
        return self.status == AssetStatus.READY and bool((self.storage_key or "").strip())


# ─────────────────────────────────────────────────────────────
# Interface
# ─────────────────────────────────────────────────────────────
class CatalogRepositoryProtocol:
    async def get_episode(self, episode_id: str) -> Optional[EpisodeRecord]:
        raise NotImplementedError

    async def get_series(self, series_id: str) -> Optional[SeriesRecord]:
        raise NotImplementedError

    async def get_series_status(self, series_id: str) -> Optional[ContentStatus]:
        series = await self.get_series(series_id)
        return series.status if series else None

    async def get_video_asset(self, asset_id: str) -> Optional[VideoAssetRecord]:
        raise NotImplementedError

    async def list_episodes(self, series_id: str, *, published_only: bool = True) -> List[EpisodeRecord]:
        """Episodes of a series ordered by `order` ascending."""
        raise NotImplementedError

    async def get_episodes(self, episode_ids: Iterable[str]) -> Dict[str, EpisodeRecord]:
        raise NotImplementedError

    async def get_series_many(self, series_ids: Iterable[str]) -> Dict[str, SeriesRecord]:
        raise NotImplementedError


# ─────────────────────────────────────────────────────────────
# SQL implementation
# ─────────────────────────────────────────────────────────────
class SqlCatalogRepository(CatalogRepositoryProtocol):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_maker() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryUnavailable(f"catalog read failed: {e.__class__.__name__}") from e

    @staticmethod
    def _episode(row: Episode) -> EpisodeRecord:
        return EpisodeRecord(
            id=str(row.id),
            series_id=str(row.series_id),
            order=int(row.order),
            title=row.title,
            status=ContentStatus(row.status),
            video_asset_id=str(row.video_asset_id) if row.video_asset_id else None,
            duration_seconds=row.duration_seconds,
            thumbnail_url=row.thumbnail_url,
        )

    @staticmethod
    def _series(row: Series) -> SeriesRecord:
        return SeriesRecord(id=str(row.id), title=row.title, status=ContentStatus(row.status), poster_url=row.poster_url)

    async def get_episode(self, episode_id: str) -> Optional[EpisodeRecord]:
        pk = as_uuid(episode_id)
        if pk is None:
            return None
        async with self._session() as db:
            row = await db.get(Episode, pk)
            return self._episode(row) if row else None

    async def get_series(self, series_id: str) -> Optional[SeriesRecord]:
        pk = as_uuid(series_id)
        if pk is None:
            return None
        async with self._session() as db:
            row = await db.get(Series, pk)
            return self._series(row) if row else None

    async def get_video_asset(self, asset_id: str) -> Optional[VideoAssetRecord]:
        pk = as_uuid(asset_id)
        if pk is None:
            return None
        async with self._session() as db:
            row = await db.get(VideoAsset, pk)
            if not row:
                return None
            return VideoAssetRecord(id=str(row.id), status=AssetStatus(row.status), storage_key=row.storage_key)

    async def list_episodes(self, series_id: str, *, published_only: bool = True) -> List[EpisodeRecord]:
        pk = as_uuid(series_id)
        if pk is None:
            return []
        stmt = select(Episode).where(Episode.series_id == pk)
        if published_only:
            stmt = stmt.where(Episode.status == ContentStatus.PUBLISHED)
        stmt = stmt.order_by(Episode.order.asc())
        async with self._session() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [self._episode(r) for r in rows]

    async def get_episodes(self, episode_ids: Iterable[str]) -> Dict[str, EpisodeRecord]:
        pks = [pk for pk in (as_uuid(i) for i in episode_ids) if pk is not None]
        if not pks:
            return {}
        async with self._session() as db:
            rows = (await db.execute(select(Episode).where(Episode.id.in_(pks)))).scalars().all()
            return {str(r.id): self._episode(r) for r in rows}

    async def get_series_many(self, series_ids: Iterable[str]) -> Dict[str, SeriesRecord]:
        pks = [pk for pk in (as_uuid(i) for i in series_ids) if pk is not None]
        if not pks:
            return {}
        async with self._session() as db:
            rows = (await db.execute(select(Series).where(Series.id.in_(pks)))).scalars().all()
            return {str(r.id): self._series(r) for r in rows}


# ─────────────────────────────────────────────────────────────
# In-memory implementation
# ─────────────────────────────────────────────────────────────
class MemoryCatalogRepository(CatalogRepositoryProtocol):
    def __init__(self) -> None:
        self.series: Dict[str, SeriesRecord] = {}
        self.episodes: Dict[str, EpisodeRecord] = {}
        self.assets: Dict[str, VideoAssetRecord] = {}

    # seeding helpers
    def add_series(self, record: SeriesRecord) -> SeriesRecord:
        self.series[record.id] = record
        return record

    def add_episode(self, record: EpisodeRecord) -> EpisodeRecord:
        self.episodes[record.id] = record
        return record

    def add_asset(self, record: VideoAssetRecord) -> VideoAssetRecord:
        self.assets[record.id] = record
        return record

    async def get_episode(self, episode_id: str) -> Optional[EpisodeRecord]:
        return self.episodes.get(episode_id)

    async def get_series(self, series_id: str) -> Optional[SeriesRecord]:
        return self.series.get(series_id)

    async def get_video_asset(self, asset_id: str) -> Optional[VideoAssetRecord]:
        return self.assets.get(asset_id)

    async def list_episodes(self, series_id: str, *, published_only: bool = True) -> List[EpisodeRecord]:
        items = [e for e in self.episodes.values() if e.series_id == series_id]
        if published_only:
            items = [e for e in items if e.status == ContentStatus.PUBLISHED]
        return sorted(items, key=lambda e: e.order)

    async def get_episodes(self, episode_ids: Iterable[str]) -> Dict[str, EpisodeRecord]:
        return {i: self.episodes[i] for i in episode_ids if i in self.episodes}

    async def get_series_many(self, series_ids: Iterable[str]) -> Dict[str, SeriesRecord]:
        return {i: self.series[i] for i in series_ids if i in self.series}


def get_catalog_repository() -> CatalogRepositoryProtocol:
    from app.db.session import get_session_maker

    return build_from_env("CATALOG_REPOSITORY_IMPL", lambda: SqlCatalogRepository(get_session_maker()))


__all__ = [
    "SeriesRecord",
    "EpisodeRecord",
    "VideoAssetRecord",
    "CatalogRepositoryProtocol",
    "SqlCatalogRepository",
    "MemoryCatalogRepository",
    "get_catalog_repository",
]
