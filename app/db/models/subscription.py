from __future__ import annotations

"""
💳 StreamGate — Subscription (state record)
==========================================

One row per subscription period. Payment capture happens upstream; this table
only mirrors the resulting *state*.

Design highlights
-----------------
• A viewer may accumulate several rows (re-subscribe, plan change). The most
  recent row by `start_date` (tie-break `created_at`) is canonical.
• `renews_at` is stored for reporting but is never trusted on read: the
  subscription state model recomputes it from `plan` and `start_date`.
• `amount` is the list price in minor units at the time of purchase.
"""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base, pg_enum
from app.schemas.enums import SubscriptionPlan, SubscriptionStatus


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    viewer_id = Column(UUID(as_uuid=True), ForeignKey("viewers.id", ondelete="CASCADE"), nullable=False)

    plan = Column(pg_enum(SubscriptionPlan, "subscription_plan"), nullable=False)
    status = Column(pg_enum(SubscriptionStatus, "subscription_status"), nullable=False)
    amount = Column(Integer, nullable=False)

    start_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    renews_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_nonneg"),
        # "latest record per viewer" lookups
        Index("ix_subscriptions_viewer_latest", "viewer_id", start_date.desc(), created_at.desc()),
    )

    viewer = relationship("Viewer", back_populates="subscriptions", lazy="noload")
