from __future__ import annotations

"""
🎞️ StreamGate — Video Asset
==========================

Uploaded media for an episode. Only assets in `ready` state with a non-empty
`storage_key` can back a playback grant.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base_class import Base, pg_enum
from app.schemas.enums import AssetStatus


class VideoAsset(Base):
    __tablename__ = "video_assets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    storage_key = Column(String(1024), nullable=True, doc="Object key in the media bucket")
    status = Column(pg_enum(AssetStatus, "asset_status"), nullable=False, default=AssetStatus.PENDING)
    content_type = Column(String(128), nullable=True)
    size_bytes = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_playable(self) -> bool:
        return self.status == AssetStatus.READY and bool((self.storage_key or "").strip())
