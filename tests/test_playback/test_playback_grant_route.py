# tests/test_playback/test_playback_grant_route.py
from datetime import timedelta

from app.core.jwt import create_access_token
from app.schemas.enums import SubscriptionStatus
from app.services.signing import verify_signed_url

from tests.fixtures.app import bearer, mount
from tests.fixtures.world import BANNED_VIEWER, NOW, SUSPENDED_VIEWER, VIEWER, episode_id

MODULE = "app.api.v1.routers.playback"


def _grant_path(ep_id: str) -> str:
    return f"/api/v1/episodes/{ep_id}/playback-grant"


# ─────────────────────────────────────────────────────────────────────────────
# Scenarios
# ─────────────────────────────────────────────────────────────────────────────

def test_free_episode_anonymous_200_with_no_store(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    headers = {"X-Request-Id": "req-777", "traceparent": "00-" + "a" * 32 + "-" + "b" * 16 + "-01"}

    resp = client.get(_grant_path(episode_id(1)), headers=headers)

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"url", "expiresInSeconds", "expiresAt"}
    assert body["expiresInSeconds"] == 300
    assert verify_signed_url(body["url"], now=int(NOW.timestamp()))
    assert resp.headers["Cache-Control"] == "no-store"
    assert resp.headers["Pragma"] == "no-cache"
    assert resp.headers["x-request-id"] == "req-777"
    assert resp.headers["traceparent"] == headers["traceparent"]


def test_gated_episode_anonymous_401(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(_grant_path(episode_id(3)))
    assert resp.status_code == 401
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.headers.get("WWW-Authenticate") == "Bearer"
    assert resp.json()["reason"] == "UNAUTHENTICATED"


def test_gated_episode_canceled_403_with_reason(monkeypatch, world):
    world.subscribe(VIEWER, SubscriptionStatus.CANCELED)
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(_grant_path(episode_id(3)), headers=bearer(VIEWER))
    assert resp.status_code == 403
    body = resp.json()
    assert body["reason"] == "FORBIDDEN_NOT_SUBSCRIBED"
    assert body["status"] == 403
    assert "url" not in body


def test_gated_episode_trial_200(monkeypatch, world):
    world.subscribe(VIEWER, SubscriptionStatus.TRIAL)
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(_grant_path(episode_id(3)), headers=bearer(VIEWER))
    assert resp.status_code == 200
    assert resp.json()["expiresInSeconds"] == 300


def test_unknown_episode_404(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(_grant_path("e0000000-0000-4000-8000-999999999999"))
    assert resp.status_code == 404
    assert resp.json()["reason"] == "NOT_FOUND"


def test_asset_unavailable_503(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(_grant_path(episode_id(6)))
    assert resp.status_code == 503
    assert resp.json()["reason"] == "ASSET_UNAVAILABLE"


def test_malformed_episode_id_400(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(_grant_path("not-a-uuid"))
    assert resp.status_code == 400
    assert resp.json()["reason"] == "INVALID_INPUT"


# ─────────────────────────────────────────────────────────────────────────────
# Principals
# ─────────────────────────────────────────────────────────────────────────────

def test_suspended_and_banned_viewers_are_treated_as_anonymous(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    for viewer in (SUSPENDED_VIEWER, BANNED_VIEWER):
        world.subscribe(viewer, SubscriptionStatus.ACTIVE)
        gated = client.get(_grant_path(episode_id(3)), headers=bearer(viewer))
        assert gated.status_code == 401
        assert gated.json()["reason"] == "UNAUTHENTICATED"
        # the free tier still plays
        assert client.get(_grant_path(episode_id(1)), headers=bearer(viewer)).status_code == 200


def test_expired_token_browses_as_guest(monkeypatch, world):
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE)
    _, client, _ = mount(monkeypatch, MODULE, world)
    token = create_access_token(VIEWER, expires_in=timedelta(minutes=-1))
    resp = client.get(_grant_path(episode_id(3)), headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_revoked_token_browses_as_guest(monkeypatch, world, redis_client):
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE)
    _, client, _ = mount(monkeypatch, MODULE, world)
    token = create_access_token(VIEWER, extra_claims={"jti": "revoked-jti"})
    redis_client.store["revoked:jti:revoked-jti"] = ("1", None)
    resp = client.get(_grant_path(episode_id(3)), headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ─────────────────────────────────────────────────────────────────────────────
# Infrastructure
# ─────────────────────────────────────────────────────────────────────────────

def test_store_failure_503_internal(monkeypatch, world):
    from app.repositories import RepositoryUnavailable

    class _Down:
        async def get_latest_subscription(self, viewer_id):
            raise RepositoryUnavailable("db down")

    world.subscriptions = _Down()
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(_grant_path(episode_id(3)), headers=bearer(VIEWER))
    assert resp.status_code == 503
    assert resp.json()["reason"] == "INTERNAL"


# ─────────────────────────────────────────────────────────────────────────────
# Next episode
# ─────────────────────────────────────────────────────────────────────────────

def test_next_episode_for_guest_is_locked(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(f"/api/v1/episodes/{episode_id(2)}/next")
    assert resp.status_code == 200
    body = resp.json()
    assert body["hasNext"] is True
    assert body["episode"]["order"] == 3
    assert body["episode"]["locked"] is True
    assert body["episode"]["isFree"] is False


def test_next_episode_at_end_of_series(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    body = client.get(f"/api/v1/episodes/{episode_id(6)}/next").json()
    assert body == {"hasNext": False, "episode": None}


def test_next_episode_of_unpublished_series_404(monkeypatch, world):
    _, client, _ = mount(monkeypatch, MODULE, world)
    resp = client.get(f"/api/v1/episodes/{episode_id(8)}/next")
    assert resp.status_code == 404
    assert resp.json()["reason"] == "NOT_FOUND"
