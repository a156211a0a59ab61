"""
Repository package for data access layers.

Each repository module exposes a protocol-like base class, a SQL
implementation (async SQLAlchemy), an in-memory implementation used by tests
and local demos, and a `get_*_repository()` factory.

A custom implementation can be swapped in with an environment variable
holding a dotted path, e.g.:

    CATALOG_REPOSITORY_IMPL=myapp.data.catalog:GraphCatalogRepository

Storage failures are raised as `RepositoryUnavailable`; services translate
them into an INTERNAL outcome.
"""

from __future__ import annotations

import os
import uuid
from typing import Any, Callable, Optional


class RepositoryUnavailable(RuntimeError):
    """The backing store could not be reached or returned an error."""


def as_uuid(value: Any) -> Optional[uuid.UUID]:
    """Parse an id; malformed ids yield None (looked up as "not found")."""
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def import_string(path: str, *, env_name: str) -> Any:
    module_path, _, class_name = path.partition(":")
    if not module_path or not class_name:
        raise ValueError(f"{env_name} must be 'module.sub:ClassName'")
    module = __import__(module_path, fromlist=[class_name])
    return getattr(module, class_name)


def build_from_env(env_name: str, default: Callable[[], Any]) -> Any:
    """Instantiate the class named by `env_name`, or fall back to `default()`."""
    impl_path = os.environ.get(env_name)
    if impl_path:
        return import_string(impl_path, env_name=env_name)()
    return default()


__all__ = ["RepositoryUnavailable", "as_uuid", "import_string", "build_from_env"]
