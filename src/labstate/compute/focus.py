"""Focus scoring and hysteresis-gated global focus selection."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from labstate.dates import days_since, isoformat, parse_timestamp, round_half_up, utc_now
from labstate.ingest.pulses import PulseSummary
from labstate.snapshot.schema import ActivityLevel, GlobalDerived, HealthScore

logger = structlog.get_logger()

WEIGHT_COMMIT = 10
WEIGHT_MANUAL = 30
WEIGHT_HEALTH_DELTA = 5
MANUAL_BOOST = 100

DECAY_WINDOW_DAYS = 7
ACTIVATION_THRESHOLD = 20
THRESHOLD_SWAP = 15
MIN_TENURE_DAYS = 3


@dataclass(frozen=True)
class FocusCandidate:
    project_id: str
    pulses: Sequence[PulseSummary] = field(default_factory=tuple)
    last_decision_date: str | None = None
    health: HealthScore | None = None


@dataclass(frozen=True)
class ProjectFocus:
    score: int
    activity_level: ActivityLevel


@dataclass(frozen=True)
class FocusState:
    current_focus_id: str | None = None
    focus_score: int = 0
    activity_level: ActivityLevel = "idle"
    tenure_start: str | None = None


@dataclass(frozen=True)
class FocusResult:
    projects: dict[str, ProjectFocus]
    global_focus: FocusState


def activity_level(score: int) -> ActivityLevel:
    if score > 80:
        return "high"
    if score > 40:
        return "medium"
    if score > 10:
        return "low"
    return "idle"


def raw_focus_score(candidate: FocusCandidate, is_manual_override: bool, now: datetime) -> int:
    """Decayed recent commits + decision recency + health gain + manual pin."""
    score = 0.0

    for pulse in candidate.pulses:
        days_ago = days_since(pulse.date, now)
        if days_ago >= DECAY_WINDOW_DAYS:
            continue
        score += pulse.commit_count * WEIGHT_COMMIT / (days_ago + 1)

    if candidate.last_decision_date:
        days_ago = days_since(candidate.last_decision_date, now)
        if days_ago < DECAY_WINDOW_DAYS:
            score += WEIGHT_MANUAL / (days_ago + 1)

    health = candidate.health
    if health is not None:
        delta = health.score - health.previous_score
        if delta > 0:
            score += delta * WEIGHT_HEALTH_DELTA

    if is_manual_override:
        score += MANUAL_BOOST

    return round_half_up(score)


def _leader(projects: dict[str, ProjectFocus]) -> str | None:
    # Ordered by project id so equal top scores resolve the same way every run
    leader: str | None = None
    for project_id in sorted(projects):
        if leader is None or projects[project_id].score > projects[leader].score:
            leader = project_id
    return leader


def _may_swap(current_score: int, contender_score: int, tenure_start: str, now: datetime) -> bool:
    if days_since(tenure_start, now) < MIN_TENURE_DAYS:
        return False
    return contender_score > current_score + THRESHOLD_SWAP


def select_focus(
    projects: dict[str, ProjectFocus],
    current_focus_id: str | None,
    tenure_start: str | None,
    now: datetime,
) -> FocusState:
    """Advance the NoFocus / Focused(project, tenure) state machine by one run."""
    now_iso = isoformat(now)

    if current_focus_id is not None and current_focus_id not in projects:
        logger.info("Focused project no longer tracked, clearing focus", project=current_focus_id)
        current_focus_id, tenure_start = None, None

    if current_focus_id is not None and tenure_start is not None:
        try:
            parse_timestamp(tenure_start)
        except ValueError:
            logger.warning("Unreadable focus tenure, restarting it", tenure_start=tenure_start)
            tenure_start = None

    leader = _leader(projects)

    if current_focus_id is None:
        if leader is not None and projects[leader].score > ACTIVATION_THRESHOLD:
            logger.info("Focus acquired", project=leader, score=projects[leader].score)
            current_focus_id, tenure_start = leader, now_iso
    else:
        if tenure_start is None:
            tenure_start = now_iso
        if leader is not None and leader != current_focus_id:
            current_score = projects[current_focus_id].score
            contender_score = projects[leader].score
            if _may_swap(current_score, contender_score, tenure_start, now):
                logger.info(
                    "Focus swapped",
                    previous=current_focus_id,
                    project=leader,
                    previous_score=current_score,
                    score=contender_score,
                )
                current_focus_id, tenure_start = leader, now_iso

    if current_focus_id is not None and projects[current_focus_id].score < ACTIVATION_THRESHOLD:
        logger.info("Focus released", project=current_focus_id, score=projects[current_focus_id].score)
        current_focus_id, tenure_start = None, None

    if current_focus_id is None:
        return FocusState()
    focused = projects[current_focus_id]
    return FocusState(
        current_focus_id=current_focus_id,
        focus_score=focused.score,
        activity_level=focused.activity_level,
        tenure_start=tenure_start,
    )


def compute_focus(
    candidates: Sequence[FocusCandidate],
    previous_state: GlobalDerived | None = None,
    manual_override_project_id: str | None = None,
    previous_focus_start: str | None = None,
    now: datetime | None = None,
) -> FocusResult:
    """Score every project and carry global focus forward from the previous run.

    ``previous_focus_start`` defaults to the tenure persisted in
    ``previous_state``.
    """
    now = now or utc_now()

    projects: dict[str, ProjectFocus] = {}
    for candidate in candidates:
        score = raw_focus_score(candidate, candidate.project_id == manual_override_project_id, now)
        projects[candidate.project_id] = ProjectFocus(score=score, activity_level=activity_level(score))

    current_focus_id = previous_state.current_focus_project_id if previous_state else None
    tenure_start = previous_focus_start
    if tenure_start is None and previous_state is not None:
        tenure_start = previous_state.tenure_start

    return FocusResult(
        projects=projects,
        global_focus=select_focus(projects, current_focus_id, tenure_start, now),
    )
