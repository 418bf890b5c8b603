"""Project health scoring."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog

from labstate.dates import days_since, isoformat, parse_timestamp, utc_now
from labstate.ingest.pulses import PulseSummary
from labstate.snapshot.schema import HealthBreakdown, HealthScore

logger = structlog.get_logger()

ACTIVITY_WINDOW_DAYS = 14
# Pegged until an incident signal source exists
STABILITY_BASELINE = 80

# Weights in tenths: 0.3 activity, 0.3 delivery, 0.2 decision velocity, 0.2 stability
WEIGHTS = {"activity": 3, "delivery": 3, "decision_velocity": 2, "stability": 2}

ROUTINE_UPDATE = "Routine update."
CHANGE_REASONS = {
    "activity": ("Increased development activity", "Decreased activity"),
    "delivery": ("Recent deployment", "No recent shipments"),
    "decision_velocity": ("New architectural decisions", "Decision cadence slowing"),
    "stability": ("Stability improved", "Stability declined"),
}


def activity_score(pulses: Sequence[PulseSummary], now: datetime) -> int:
    """Bucket commits and active days over the trailing two weeks."""
    window_start = now - timedelta(days=ACTIVITY_WINDOW_DAYS)
    commit_count = 0
    active_days = 0
    for pulse in pulses:
        if parse_timestamp(pulse.date) >= window_start:
            commit_count += pulse.commit_count
            active_days += 1

    if active_days >= 5 or commit_count >= 50:
        return 100
    if active_days >= 3 or commit_count >= 20:
        return 75
    if active_days >= 1 or commit_count >= 5:
        return 50
    return 0


def delivery_score(last_ship_date: str | None, now: datetime) -> int:
    if not last_ship_date:
        return 0
    days = days_since(last_ship_date, now)
    if days <= 7:
        return 100
    if days <= 14:
        return 80
    if days <= 30:
        return 60
    if days <= 90:
        return 40
    return 20


def decision_velocity_score(last_decision_date: str | None, now: datetime) -> int:
    if not last_decision_date:
        return 0
    days = days_since(last_decision_date, now)
    if days <= 14:
        return 100
    if days <= 30:
        return 80
    if days <= 60:
        return 50
    return 20


def weighted_score(breakdown: HealthBreakdown) -> int:
    tenths = sum(getattr(breakdown, component) * weight for component, weight in WEIGHTS.items())
    # Half-up rounding of tenths / 10 in integer arithmetic
    return (tenths + 5) // 10


def change_reason(breakdown: HealthBreakdown, previous: HealthScore | None) -> str:
    """Name the component that moved the most since the previous run."""
    if previous is None:
        return ROUTINE_UPDATE

    deltas = {
        component: getattr(breakdown, component) - getattr(previous.breakdown, component)
        for component in CHANGE_REASONS
    }
    largest = max(abs(delta) for delta in deltas.values())
    leaders = [component for component, delta in deltas.items() if abs(delta) == largest]
    if largest == 0 or len(leaders) > 1:
        return ROUTINE_UPDATE

    component = leaders[0]
    improved, declined = CHANGE_REASONS[component]
    return improved if deltas[component] > 0 else declined


def compute_health(
    project_id: str,
    pulses: Sequence[PulseSummary],
    last_ship_date: str | None = None,
    last_decision_date: str | None = None,
    previous_health: HealthScore | None = None,
    now: datetime | None = None,
) -> HealthScore:
    """Recompute a project's health from scratch.

    Only pulses and the ship/decision dates feed the score; the previous
    health is used to report movement, never to build on.
    """
    now = now or utc_now()
    breakdown = HealthBreakdown(
        activity=activity_score(pulses, now),
        delivery=delivery_score(last_ship_date, now),
        stability=STABILITY_BASELINE,
        decision_velocity=decision_velocity_score(last_decision_date, now),
    )
    score = weighted_score(breakdown)
    reason = change_reason(breakdown, previous_health)

    logger.debug("Health computed", project=project_id, score=score, reason=reason)
    return HealthScore(
        score=score,
        previous_score=previous_health.score if previous_health else score,
        last_calculated_at=isoformat(now),
        breakdown=breakdown,
        change_reason=reason,
    )
