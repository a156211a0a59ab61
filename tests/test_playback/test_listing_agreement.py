# tests/test_playback/test_listing_agreement.py
"""
The `locked` badge in a series listing and the playback authorization outcome
come from the same resolver, so for every viewer and every episode they must
agree: locked ⇔ authorization refuses with UNAUTHENTICATED or
FORBIDDEN_NOT_SUBSCRIBED.
"""

import pytest

from app.core.exceptions import PlaybackDenied
from app.schemas.enums import DecisionReason, ReasonCode, SubscriptionStatus

from tests.fixtures.world import OTHER_VIEWER, SERIES_ID, VIEWER, episode_id

pytestmark = pytest.mark.anyio

_ENTITLEMENT_DENIALS = {ReasonCode.UNAUTHENTICATED, ReasonCode.FORBIDDEN_NOT_SUBSCRIBED}


async def _outcome(auth, viewer_id, ep_id):
    try:
        await auth.authorize(viewer_id, ep_id)
    except PlaybackDenied as e:
        return e.reason
    return "GRANTED"


@pytest.mark.parametrize(
    "viewer_id,status",
    [
        (None, None),
        (OTHER_VIEWER, None),
        (VIEWER, SubscriptionStatus.ACTIVE),
        (VIEWER, SubscriptionStatus.TRIAL),
        (VIEWER, SubscriptionStatus.PAST_DUE),
        (VIEWER, SubscriptionStatus.CANCELED),
        (VIEWER, SubscriptionStatus.EXPIRED),
    ],
)
async def test_locked_flag_matches_authorization(world, viewer_id, status):
    if status is not None:
        world.subscribe(viewer_id, status)

    state = await world.state_model().resolve(viewer_id)
    _, episodes = await world.listing().list_episodes(SERIES_ID, state)
    auth = world.authorizer()

    assert [e.order for e in episodes] == [1, 2, 3, 4, 5, 6]
    for item in episodes:
        outcome = await _outcome(auth, viewer_id, item.id)
        if item.order == 6:
            # no asset: authorization fails on availability, not entitlement
            assert outcome == ReasonCode.ASSET_UNAVAILABLE
            continue
        assert item.locked == (outcome in _ENTITLEMENT_DENIALS), (item.order, outcome)


async def test_listing_marks_free_tier(world):
    state = await world.state_model().resolve(None)
    _, episodes = await world.listing().list_episodes(SERIES_ID, state)
    by_order = {e.order: e for e in episodes}

    assert by_order[1].is_free and not by_order[1].locked
    assert by_order[2].reason == DecisionReason.FREE_TIER
    assert by_order[3].locked and by_order[3].reason == DecisionReason.SUBSCRIPTION_REQUIRED
    assert not by_order[3].is_free


async def test_listing_for_subscriber_unlocks_everything(world):
    world.subscribe(VIEWER, SubscriptionStatus.ACTIVE)
    state = await world.state_model().resolve(VIEWER)
    _, episodes = await world.listing().list_episodes(SERIES_ID, state)
    assert not any(e.locked for e in episodes)
    assert {e.reason for e in episodes if e.order > 2} == {DecisionReason.SUBSCRIBED}


async def test_listing_excludes_drafts(world):
    _, episodes = await world.listing().list_episodes(SERIES_ID, None)
    assert episode_id(7) not in {e.id for e in episodes}
