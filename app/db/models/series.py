from __future__ import annotations

"""
📺 StreamGate — Series
=====================

A series groups ordered episodes. Only `published` series expose their
episodes to viewers; draft/pending/archived series behave as not found.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base, pg_enum
from app.schemas.enums import ContentStatus


class Series(Base):
    __tablename__ = "series"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String(255), nullable=False)
    synopsis = Column(Text, nullable=True)
    poster_url = Column(String(1024), nullable=True)
    status = Column(pg_enum(ContentStatus, "content_status"), nullable=False, default=ContentStatus.DRAFT, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    episodes = relationship(
        "Episode",
        back_populates="series",
        order_by="Episode.order",
        passive_deletes=True,
        lazy="noload",
    )
