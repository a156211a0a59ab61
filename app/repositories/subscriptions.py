from __future__ import annotations

"""Subscription state repository.

Reads subscription *state* records. Payment capture is upstream; this module
never writes. The canonical record for a viewer is the most recent one by
`start_date`, ties broken by `created_at`.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import Subscription
from app.repositories import RepositoryUnavailable, as_uuid, build_from_env
from app.schemas.enums import SubscriptionPlan, SubscriptionStatus


@dataclass(frozen=True)
class SubscriptionRecord:
    viewer_id: str
    plan: SubscriptionPlan
    status: SubscriptionStatus
    start_date: datetime
    created_at: Optional[datetime] = None
    amount: Optional[int] = None
    # as stored; the state model recomputes it and never trusts this value
    renews_at: Optional[datetime] = None


def _recency_key(record: SubscriptionRecord):
    return (record.start_date, record.created_at or record.start_date)


class SubscriptionRepositoryProtocol:
    async def get_latest_subscription(self, viewer_id: str) -> Optional[SubscriptionRecord]:
        raise NotImplementedError


class SqlSubscriptionRepository(SubscriptionRepositoryProtocol):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get_latest_subscription(self, viewer_id: str) -> Optional[SubscriptionRecord]:
        pk = as_uuid(viewer_id)
        if pk is None:
            return None
        stmt = (
            select(Subscription)
            .where(Subscription.viewer_id == pk)
            .order_by(Subscription.start_date.desc(), Subscription.created_at.desc())
            .limit(1)
        )
        try:
            async with self._session_maker() as db:
                row = (await db.execute(stmt)).scalars().first()
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryUnavailable(f"subscription read failed: {e.__class__.__name__}") from e
        if row is None:
            return None
        return SubscriptionRecord(
            viewer_id=str(row.viewer_id),
            plan=SubscriptionPlan(row.plan),
            status=SubscriptionStatus(row.status),
            start_date=row.start_date,
            created_at=row.created_at,
            amount=row.amount,
            renews_at=row.renews_at,
        )


class MemorySubscriptionRepository(SubscriptionRepositoryProtocol):
    def __init__(self) -> None:
        self.records: Dict[str, List[SubscriptionRecord]] = {}

    def add(self, record: SubscriptionRecord) -> SubscriptionRecord:
        self.records.setdefault(record.viewer_id, []).append(record)
        return record

    async def get_latest_subscription(self, viewer_id: str) -> Optional[SubscriptionRecord]:
        items = self.records.get(viewer_id) or []
        return max(items, key=_recency_key) if items else None


def get_subscription_repository() -> SubscriptionRepositoryProtocol:
    from app.db.session import get_session_maker

    return build_from_env("SUBSCRIPTION_REPOSITORY_IMPL", lambda: SqlSubscriptionRepository(get_session_maker()))


__all__ = [
    "SubscriptionRecord",
    "SubscriptionRepositoryProtocol",
    "SqlSubscriptionRepository",
    "MemorySubscriptionRepository",
    "get_subscription_repository",
]
