from __future__ import annotations

"""
🎬 StreamGate — Episode
======================

A single episode of a `Series`, positioned by a 1-based `order`.

Design highlights
-----------------
• `(series_id, order)` is unique; `order` is strictly positive.
• `order` is the only input the entitlement resolver reads from an episode:
  low orders form the free tier.
• The playable media lives in `VideoAsset`; an episode may exist before its
  asset is ready.
"""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base, pg_enum
from app.schemas.enums import ContentStatus


class Episode(Base):
    __tablename__ = "episodes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    series_id = Column(UUID(as_uuid=True), ForeignKey("series.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column("order", Integer, nullable=False)
    title = Column(String(255), nullable=False)
    synopsis = Column(Text, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    thumbnail_url = Column(String(1024), nullable=True)
    status = Column(pg_enum(ContentStatus, "content_status"), nullable=False, default=ContentStatus.DRAFT)
    video_asset_id = Column(UUID(as_uuid=True), ForeignKey("video_assets.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("series_id", "order", name="uq_episodes_series_order"),
        CheckConstraint('"order" >= 1', name="order_positive"),
        CheckConstraint("duration_seconds IS NULL OR duration_seconds > 0", name="duration_positive"),
    )

    series = relationship("Series", back_populates="episodes", lazy="noload")
    video_asset = relationship("VideoAsset", lazy="noload")
