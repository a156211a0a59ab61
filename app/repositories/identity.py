from __future__ import annotations

"""Identity read repository.

Answers one question for the engine: what is the account status of a viewer?
Unknown viewers resolve to `None` and are treated like guests.
"""

from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import Viewer
from app.repositories import RepositoryUnavailable, as_uuid, build_from_env
from app.schemas.enums import AccountStatus


class IdentityRepositoryProtocol:
    async def get_viewer_status(self, viewer_id: str) -> Optional[AccountStatus]:
        raise NotImplementedError


class SqlIdentityRepository(IdentityRepositoryProtocol):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get_viewer_status(self, viewer_id: str) -> Optional[AccountStatus]:
        pk = as_uuid(viewer_id)
        if pk is None:
            return None
        try:
            async with self._session_maker() as db:
                value = (await db.execute(select(Viewer.status).where(Viewer.id == pk))).scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryUnavailable(f"identity read failed: {e.__class__.__name__}") from e
        return AccountStatus(value) if value is not None else None


class MemoryIdentityRepository(IdentityRepositoryProtocol):
    def __init__(self, statuses: Optional[Dict[str, AccountStatus]] = None) -> None:
        self.statuses: Dict[str, AccountStatus] = dict(statuses or {})

    def set_status(self, viewer_id: str, status: AccountStatus) -> None:
        self.statuses[viewer_id] = status

    async def get_viewer_status(self, viewer_id: str) -> Optional[AccountStatus]:
        return self.statuses.get(viewer_id)


def get_identity_repository() -> IdentityRepositoryProtocol:
    from app.db.session import get_session_maker

    return build_from_env("IDENTITY_REPOSITORY_IMPL", lambda: SqlIdentityRepository(get_session_maker()))


__all__ = [
    "IdentityRepositoryProtocol",
    "SqlIdentityRepository",
    "MemoryIdentityRepository",
    "get_identity_repository",
]
