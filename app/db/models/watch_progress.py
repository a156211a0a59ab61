from __future__ import annotations

"""
⏯️ StreamGate — Watch Progress (per-viewer resume state)
=======================================================

One row per `(viewer_id, episode_id)`, created on the first progress report
and overwritten by every later one (single `INSERT … ON CONFLICT DO UPDATE`).
The engine never deletes rows.

• `progress_seconds` is non-negative (DB check backs up the service check).
• `last_watched_at` is set by the writer on every upsert and drives the
  "continue watching" ordering (`ix_watch_progress_viewer_recent`).
"""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class WatchProgress(Base):
    __tablename__ = "watch_progress"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    viewer_id = Column(UUID(as_uuid=True), ForeignKey("viewers.id", ondelete="CASCADE"), nullable=False)
    episode_id = Column(UUID(as_uuid=True), ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False)

    progress_seconds = Column(Float, nullable=False, server_default=text("0"))
    completed = Column(Boolean, nullable=False, server_default=text("false"))
    last_watched_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("viewer_id", "episode_id", name="uq_watch_progress_viewer_episode"),
        CheckConstraint("progress_seconds >= 0", name="progress_nonneg"),
        Index("ix_watch_progress_viewer_recent", "viewer_id", last_watched_at.desc()),
    )

    viewer = relationship("Viewer", back_populates="watch_progress", lazy="noload")
    episode = relationship("Episode", lazy="noload")
