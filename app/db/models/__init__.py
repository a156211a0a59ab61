"""
StreamGate — ORM model registry
===============================

Import all ORM models so their tables are registered on `Base.metadata`
(Alembic autogenerate, relationship resolution).

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base

from .viewer import Viewer
from .subscription import Subscription
from .series import Series
from .video_asset import VideoAsset
from .episode import Episode
from .watch_progress import WatchProgress

__all__ = [
    "Base",
    "Viewer",
    "Subscription",
    "Series",
    "VideoAsset",
    "Episode",
    "WatchProgress",
]
