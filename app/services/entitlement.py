from __future__ import annotations

"""
Entitlement resolver: the one place that decides whether an episode is
playable for a subscription state.

`decide` is pure (no I/O, no clock). Playback authorization, the listing
annotator and auto-advance all call it, so a locked badge in a listing and
a refused grant can never disagree.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from app.core.config import FREE_EPISODE_THRESHOLD
from app.schemas.enums import DecisionReason
from app.schemas.playback import SubscriptionState


class _HasOrder(Protocol):
    order: int


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DecisionReason


def is_free_episode(order: int, *, threshold: int = FREE_EPISODE_THRESHOLD) -> bool:
    return int(order) <= threshold


def decide(
    episode: _HasOrder,
    state: Optional[SubscriptionState],
    *,
    threshold: int = FREE_EPISODE_THRESHOLD,
) -> Decision:
    """
    Free tier first, then subscription.

    - `order <= threshold`            -> allowed, FREE_TIER
    - entitled subscription state      -> allowed, SUBSCRIBED
    - anything else (incl. no state)   -> denied, SUBSCRIPTION_REQUIRED
    """
    if is_free_episode(episode.order, threshold=threshold):
        return Decision(True, DecisionReason.FREE_TIER)
    if state is not None and state.is_entitled:
        return Decision(True, DecisionReason.SUBSCRIBED)
    return Decision(False, DecisionReason.SUBSCRIPTION_REQUIRED)


__all__ = ["Decision", "decide", "is_free_episode"]
