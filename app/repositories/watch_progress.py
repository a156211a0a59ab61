from __future__ import annotations

"""Watch progress repository.

One row per (viewer, episode). Writes go through a single
`INSERT … ON CONFLICT (viewer_id, episode_id) DO UPDATE` statement so the
first report creates the row, later reports overwrite it, and concurrent
reports for the same pair never produce duplicates: the last statement to
commit wins.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import WatchProgress
from app.repositories import RepositoryUnavailable, as_uuid, build_from_env


@dataclass(frozen=True)
class WatchProgressRecord:
    viewer_id: str
    episode_id: str
    progress_seconds: float
    completed: bool
    last_watched_at: datetime


class WatchProgressRepositoryProtocol:
    async def upsert(
        self,
        *,
        viewer_id: str,
        episode_id: str,
        progress_seconds: float,
        completed: bool,
        watched_at: datetime,
    ) -> WatchProgressRecord:
        raise NotImplementedError

    async def get(self, viewer_id: str, episode_id: str) -> Optional[WatchProgressRecord]:
        raise NotImplementedError

    async def list_recent(self, viewer_id: str, *, limit: int) -> List[WatchProgressRecord]:
        """Most recently watched first."""
        raise NotImplementedError


def build_upsert_statement(
    *,
    viewer_id: uuid.UUID,
    episode_id: uuid.UUID,
    progress_seconds: float,
    completed: bool,
    watched_at: datetime,
):
    stmt = pg_insert(WatchProgress).values(
        id=uuid.uuid4(),
        viewer_id=viewer_id,
        episode_id=episode_id,
        progress_seconds=progress_seconds,
        completed=completed,
        last_watched_at=watched_at,
    )
    return stmt.on_conflict_do_update(
        index_elements=[WatchProgress.viewer_id, WatchProgress.episode_id],
        set_={
            "progress_seconds": stmt.excluded.progress_seconds,
            "completed": stmt.excluded.completed,
            "last_watched_at": stmt.excluded.last_watched_at,
        },
    ).returning(
        WatchProgress.viewer_id,
        WatchProgress.episode_id,
        WatchProgress.progress_seconds,
        WatchProgress.completed,
        WatchProgress.last_watched_at,
    )


def _record(row) -> WatchProgressRecord:
    return WatchProgressRecord(
        viewer_id=str(row.viewer_id),
        episode_id=str(row.episode_id),
        progress_seconds=float(row.progress_seconds),
        completed=bool(row.completed),
        last_watched_at=row.last_watched_at,
    )


class SqlWatchProgressRepository(WatchProgressRepositoryProtocol):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def upsert(
        self,
        *,
        viewer_id: str,
        episode_id: str,
        progress_seconds: float,
        completed: bool,
        watched_at: datetime,
    ) -> WatchProgressRecord:
        vid, eid = as_uuid(viewer_id), as_uuid(episode_id)
        if vid is None or eid is None:
            raise ValueError("viewer_id and episode_id must be UUIDs")
        stmt = build_upsert_statement(
            viewer_id=vid,
            episode_id=eid,
            progress_seconds=progress_seconds,
            completed=completed,
            watched_at=watched_at,
        )
        try:
            async with self._session_maker() as db:
                async with db.begin():
                    row = (await db.execute(stmt)).one()
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryUnavailable(f"progress upsert failed: {e.__class__.__name__}") from e
        return _record(row)

    async def get(self, viewer_id: str, episode_id: str) -> Optional[WatchProgressRecord]:
        vid, eid = as_uuid(viewer_id), as_uuid(episode_id)
        if vid is None or eid is None:
            return None
        stmt = select(WatchProgress).where(WatchProgress.viewer_id == vid, WatchProgress.episode_id == eid)
        try:
            async with self._session_maker() as db:
                row = (await db.execute(stmt)).scalars().first()
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryUnavailable(f"progress read failed: {e.__class__.__name__}") from e
        return _record(row) if row else None

    async def list_recent(self, viewer_id: str, *, limit: int) -> List[WatchProgressRecord]:
        vid = as_uuid(viewer_id)
        if vid is None:
            return []
        stmt = (
            select(WatchProgress)
            .where(WatchProgress.viewer_id == vid)
            .order_by(WatchProgress.last_watched_at.desc())
            .limit(limit)
        )
        try:
            async with self._session_maker() as db:
                rows = (await db.execute(stmt)).scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryUnavailable(f"progress read failed: {e.__class__.__name__}") from e
        return [_record(r) for r in rows]


class MemoryWatchProgressRepository(WatchProgressRepositoryProtocol):
    """Dict keyed by (viewer, episode); each upsert is a single synchronous step."""

    def __init__(self) -> None:
        self.rows: Dict[Tuple[str, str], WatchProgressRecord] = {}
        self.writes = 0

    async def upsert(
        self,
        *,
        viewer_id: str,
        episode_id: str,
        progress_seconds: float,
        completed: bool,
        watched_at: datetime,
    ) -> WatchProgressRecord:
        record = WatchProgressRecord(
            viewer_id=viewer_id,
            episode_id=episode_id,
            progress_seconds=float(progress_seconds),
            completed=bool(completed),
            last_watched_at=watched_at,
        )
        self.rows[(viewer_id, episode_id)] = record
        self.writes += 1
        return record

    async def get(self, viewer_id: str, episode_id: str) -> Optional[WatchProgressRecord]:
        return self.rows.get((viewer_id, episode_id))

    async def list_recent(self, viewer_id: str, *, limit: int) -> List[WatchProgressRecord]:
        mine = [r for (vid, _), r in self.rows.items() if vid == viewer_id]
        mine.sort(key=lambda r: r.last_watched_at, reverse=True)
        return mine[:limit]


def get_watch_progress_repository() -> WatchProgressRepositoryProtocol:
    from app.db.session import get_session_maker

    return build_from_env("WATCH_PROGRESS_REPOSITORY_IMPL", lambda: SqlWatchProgressRepository(get_session_maker()))


__all__ = [
    "WatchProgressRecord",
    "WatchProgressRepositoryProtocol",
    "SqlWatchProgressRepository",
    "MemoryWatchProgressRepository",
    "build_upsert_statement",
    "get_watch_progress_repository",
]
