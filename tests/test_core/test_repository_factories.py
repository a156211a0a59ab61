# tests/test_core/test_repository_factories.py
import pytest

from app.repositories import as_uuid, build_from_env
from app.repositories.catalog import MemoryCatalogRepository, SqlCatalogRepository, get_catalog_repository
from app.repositories.identity import MemoryIdentityRepository, get_identity_repository
from app.repositories.subscriptions import MemorySubscriptionRepository, get_subscription_repository
from app.repositories.watch_progress import MemoryWatchProgressRepository, get_watch_progress_repository


@pytest.mark.parametrize(
    "env_name,factory,impl",
    [
        ("CATALOG_REPOSITORY_IMPL", get_catalog_repository, MemoryCatalogRepository),
        ("IDENTITY_REPOSITORY_IMPL", get_identity_repository, MemoryIdentityRepository),
        ("SUBSCRIPTION_REPOSITORY_IMPL", get_subscription_repository, MemorySubscriptionRepository),
        ("WATCH_PROGRESS_REPOSITORY_IMPL", get_watch_progress_repository, MemoryWatchProgressRepository),
    ],
)
def test_env_override_selects_implementation(monkeypatch, env_name, factory, impl):
    monkeypatch.setenv(env_name, f"{impl.__module__}:{impl.__name__}")
    assert isinstance(factory(), impl)


def test_default_is_sql_backed(monkeypatch):
    monkeypatch.delenv("CATALOG_REPOSITORY_IMPL", raising=False)
    assert isinstance(get_catalog_repository(), SqlCatalogRepository)


def test_malformed_override_path(monkeypatch):
    monkeypatch.setenv("CATALOG_REPOSITORY_IMPL", "app.repositories.catalog.MemoryCatalogRepository")
    with pytest.raises(ValueError):
        build_from_env("CATALOG_REPOSITORY_IMPL", lambda: None)


def test_as_uuid_tolerates_garbage():
    assert as_uuid("nope") is None
    assert as_uuid(None) is None
    assert str(as_uuid("5E000000-0000-4000-8000-000000000001")) == "5e000000-0000-4000-8000-000000000001"
