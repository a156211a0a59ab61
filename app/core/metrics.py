from __future__ import annotations

"""Prometheus counters for the playback engine.

Labels are bounded enums (reason codes, outcomes), never ids.
"""

from prometheus_client import Counter, Histogram

playback_grants_total = Counter(
    "playback_grants_total",
    "Playback grants issued",
    labelnames=("tier",),
)
playback_denials_total = Counter(
    "playback_denials_total",
    "Playback requests refused, by reason code",
    labelnames=("reason",),
)
signing_seconds = Histogram(
    "playback_signing_seconds",
    "Latency of signed URL generation",
    labelnames=("signer", "result"),
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)
progress_upserts_total = Counter(
    "watch_progress_upserts_total",
    "Watch progress writes",
    labelnames=("result",),
)
subscription_cache_total = Counter(
    "subscription_state_cache_total",
    "Subscription state cache lookups on the listing path",
    labelnames=("result",),
)


def inc_grant(tier: str) -> None:
    playback_grants_total.labels(tier=tier).inc()


def inc_denial(reason: str) -> None:
    playback_denials_total.labels(reason=reason).inc()


def observe_signing_seconds(signer: str, result: str, seconds: float) -> None:
    signing_seconds.labels(signer=signer, result=result).observe(seconds)


def inc_progress_upsert(result: str) -> None:
    progress_upserts_total.labels(result=result).inc()


def inc_subscription_cache(result: str) -> None:
    subscription_cache_total.labels(result=result).inc()


__all__ = [
    "inc_grant",
    "inc_denial",
    "observe_signing_seconds",
    "inc_progress_upsert",
    "inc_subscription_cache",
]
