# app/db/base.py
"""
StreamGate — SQLAlchemy Base registry
=====================================

Single import point for Alembic: `from app.db.base import Base` guarantees
every model table is registered on `Base.metadata`.
"""

from app.db.base_class import Base
from app.db import models  # noqa: F401  (registers tables)

__all__ = ["Base"]
