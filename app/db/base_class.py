# app/db/base_class.py
from __future__ import annotations

"""
# StreamGate — SQLAlchemy Base

SQLAlchemy 2.0 declarative **Base** with:
- Global **naming conventions** (Alembic-friendly)
- Automatic **snake_case `__tablename__`** (models may override)
- `pg_enum` helper that stores enum *values* (lowercase strings) rather than names

Usage:
    from app.db.base_class import Base, pg_enum

    class Series(Base):
        status = Column(pg_enum(ContentStatus, "content_status"), nullable=False)
"""

from enum import Enum as PyEnum
import re
from typing import Type

from sqlalchemy import Enum, MetaData
from sqlalchemy.orm import DeclarativeBase, declared_attr

# ──────────────────────────────────────────────────────────────────────────────
# 🏷️ Naming conventions (stable constraint names for Alembic)
# ──────────────────────────────────────────────────────────────────────────────

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _to_snake(name: str) -> str:
    """Convert `CamelCase` to `snake_case` for table names."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def pg_enum(enum_cls: Type[PyEnum], name: str) -> Enum:
    """Native PG enum persisted by value (`"active"`), not member name (`"ACTIVE"`)."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


# ──────────────────────────────────────────────────────────────────────────────
# 🧱 Declarative Base
# ──────────────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    """Global declarative base for StreamGate models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return _to_snake(cls.__name__)

    def __repr__(self) -> str:  # pragma: no cover
        attrs = [f"{k}={getattr(self, k)!r}" for k in ("id", "status") if hasattr(self, k)]
        return f"{self.__class__.__name__}({', '.join(attrs)})"


__all__ = [
    "Base",
    "NAMING_CONVENTION",
    "pg_enum",
]
