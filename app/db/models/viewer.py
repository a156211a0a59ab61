from __future__ import annotations

"""
👤 StreamGate — Viewer (identity projection)
===========================================

Read-only projection of the identity service's account table. Registration and
login live elsewhere; the engine only needs `role` and `status` to decide
whether a bearer is an authenticated principal.

• Only `status = active` viewers are treated as authenticated; suspended or
  banned accounts behave as anonymous guests.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base, pg_enum
from app.schemas.enums import AccountStatus, ViewerRole


class Viewer(Base):
    __tablename__ = "viewers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    display_name = Column(String(120), nullable=True)
    role = Column(pg_enum(ViewerRole, "viewer_role"), nullable=False, default=ViewerRole.VIEWER)
    status = Column(pg_enum(AccountStatus, "account_status"), nullable=False, default=AccountStatus.ACTIVE, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    subscriptions = relationship("Subscription", back_populates="viewer", passive_deletes=True, lazy="noload")
    watch_progress = relationship("WatchProgress", back_populates="viewer", passive_deletes=True, lazy="noload")

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE
