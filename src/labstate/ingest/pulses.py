"""Daily pulse aggregation of commit signals."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog

from labstate.dates import utc_day
from labstate.ingest.keys import pulse_id
from labstate.ingest.signals import CommitPayload, RawSignal, SignalSource

logger = structlog.get_logger()


@dataclass(frozen=True)
class PulseSummary:
    """One project's commit activity for one UTC calendar day."""

    id: str
    project_id: str
    date: str
    commit_count: int
    lines_changed: int = 0
    file_count: int = 0


@dataclass
class _Commit:
    timestamp: datetime
    lines_changed: int
    file_count: int


def _qualifying_commits(signals: Iterable[RawSignal]) -> dict[tuple[str, str], _Commit]:
    """Non-noise git signals keyed by (project, signal id).

    The same commit can arrive from the local and the remote adapter; copies
    merge to the earliest timestamp and the largest diff stats.
    """
    commits: dict[tuple[str, str], _Commit] = {}
    for signal in signals:
        if signal.source is not SignalSource.GIT or signal.metadata.is_noise:
            continue

        lines_changed = file_count = 0
        if isinstance(signal.data, CommitPayload):
            lines_changed = signal.data.lines_changed
            file_count = signal.data.file_count

        key = (signal.project_id, signal.id)
        existing = commits.get(key)
        if existing is None:
            commits[key] = _Commit(signal.timestamp, lines_changed, file_count)
            continue
        existing.timestamp = min(existing.timestamp, signal.timestamp)
        existing.lines_changed = max(existing.lines_changed, lines_changed)
        existing.file_count = max(existing.file_count, file_count)
    return commits


def aggregate(signals: Iterable[RawSignal]) -> list[PulseSummary]:
    """Group qualifying commits into one pulse per (project, day).

    Output is sorted by (project, date) so any permutation of the same input
    produces the same list. Days with only noise commits produce no pulse.
    """
    groups: dict[tuple[str, str], list[_Commit]] = {}
    for (project_id, _signal_id), commit in _qualifying_commits(signals).items():
        groups.setdefault((project_id, utc_day(commit.timestamp)), []).append(commit)

    pulses = [
        PulseSummary(
            id=pulse_id(project_id, day),
            project_id=project_id,
            date=day,
            commit_count=len(commits),
            lines_changed=sum(commit.lines_changed for commit in commits),
            file_count=sum(commit.file_count for commit in commits),
        )
        for (project_id, day), commits in sorted(groups.items())
    ]
    logger.debug("Pulses aggregated", pulses=len(pulses))
    return pulses


def group_by_project(pulses: Iterable[PulseSummary]) -> dict[str, list[PulseSummary]]:
    grouped: dict[str, list[PulseSummary]] = {}
    for pulse in pulses:
        grouped.setdefault(pulse.project_id, []).append(pulse)
    return grouped
