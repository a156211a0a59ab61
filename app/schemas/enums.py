from __future__ import annotations

"""
Central enum definitions used across StreamGate.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (DB enums and API reason codes
  depend on them).
• Grouped by domain; keep `__all__` in sync when adding new enums.
"""

from enum import Enum as PyEnum


# ──────────────────────────────────────────────────────────────
# Identity
# ──────────────────────────────────────────────────────────────
class ViewerRole(str, PyEnum):
    VIEWER = "viewer"
    CREATOR = "creator"
    ADMIN = "admin"


class AccountStatus(str, PyEnum):
    """Only ACTIVE accounts act as authenticated principals."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"


# ──────────────────────────────────────────────────────────────
# Subscriptions
# ──────────────────────────────────────────────────────────────
class SubscriptionPlan(str, PyEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class SubscriptionStatus(str, PyEnum):
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    EXPIRED = "expired"


ENTITLING_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL})


# ──────────────────────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────────────────────
class ContentStatus(str, PyEnum):
    """Publication state shared by series and episodes."""
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class AssetStatus(str, PyEnum):
    """Lifecycle of an uploaded video asset; only READY is playable."""
    PENDING = "pending"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


# ──────────────────────────────────────────────────────────────
# Entitlement outcomes
# ──────────────────────────────────────────────────────────────
class DecisionReason(str, PyEnum):
    FREE_TIER = "FREE_TIER"
    SUBSCRIBED = "SUBSCRIBED"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"


class ReasonCode(str, PyEnum):
    """Stable machine-readable failure codes surfaced to clients."""
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN_NOT_SUBSCRIBED = "FORBIDDEN_NOT_SUBSCRIBED"
    NOT_FOUND = "NOT_FOUND"
    ASSET_UNAVAILABLE = "ASSET_UNAVAILABLE"
    INVALID_INPUT = "INVALID_INPUT"
    INTERNAL = "INTERNAL"


__all__ = [
    "ViewerRole",
    "AccountStatus",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "ENTITLING_STATUSES",
    "ContentStatus",
    "AssetStatus",
    "DecisionReason",
    "ReasonCode",
]
