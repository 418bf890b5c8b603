"""Timeline event synthesis from signals and pulses."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime

import structlog

from labstate.dates import isoformat, parse_timestamp
from labstate.ingest.pulses import PulseSummary
from labstate.ingest.signals import RawSignal, SignalSource, TimelineEntryPayload
from labstate.snapshot.schema import EVENT_TYPES, EventDerived, TimelineEvent

logger = structlog.get_logger()

PULSE_EVENT_MIN_COMMITS = 5
DEFAULT_IMPACT_SCORE = 50
MAX_PULSE_IMPACT = 10


def signal_to_event(signal: RawSignal) -> TimelineEvent | None:
    """Authored (manual/deploy) signals become timeline events; commits do not."""
    if signal.source not in (SignalSource.MANUAL, SignalSource.DEPLOY):
        return None
    if not isinstance(signal.data, TimelineEntryPayload):
        return None

    entry = signal.data
    category = signal.metadata.category
    event_type = category if category in EVENT_TYPES else "milestone"
    summary = entry.body or str(entry.details.get("description") or "")
    return TimelineEvent(
        id=signal.id,
        project_id=signal.project_id,
        type=event_type,
        date=isoformat(signal.timestamp),
        title=entry.title or "Untitled Event",
        details=dict(entry.details),
        source=signal.source.value,
        derived=EventDerived(summary_text=summary, impact_score=DEFAULT_IMPACT_SCORE),
    )


def pulse_to_event(pulse: PulseSummary) -> TimelineEvent | None:
    """Busy days surface on the timeline as pulse events."""
    if pulse.commit_count <= PULSE_EVENT_MIN_COMMITS:
        return None
    return TimelineEvent(
        id=pulse.id,
        project_id=pulse.project_id,
        type="pulse",
        date=pulse.date,
        title=f"Active Day: {pulse.commit_count} commits",
        details={
            "commit_count": pulse.commit_count,
            "lines_changed": pulse.lines_changed,
            "file_count": pulse.file_count,
        },
        source="system",
        derived=EventDerived(
            summary_text=f"{pulse.commit_count} commits on {pulse.date}",
            impact_score=min(pulse.commit_count, MAX_PULSE_IMPACT),
        ),
    )


def merge_timeline(
    previous: Mapping[str, TimelineEvent],
    signals: Iterable[RawSignal],
    pulses: Iterable[PulseSummary],
) -> dict[str, TimelineEvent]:
    """Carry previous events forward; freshly derived events replace theirs by ID."""
    events = dict(previous)
    derived = [signal_to_event(signal) for signal in signals] + [pulse_to_event(pulse) for pulse in pulses]
    for event in derived:
        if event is not None:
            events[event.id] = event
    logger.debug("Timeline merged", previous=len(previous), events=len(events))
    return events


def _event_time(event: TimelineEvent) -> datetime:
    try:
        return parse_timestamp(event.date)
    except ValueError:
        return datetime.min.replace(tzinfo=UTC)


def _newest_first(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    ordered = sorted(events, key=lambda event: event.id)
    return sorted(ordered, key=_event_time, reverse=True)


def timeline_index(events: Mapping[str, TimelineEvent]) -> list[str]:
    return [event.id for event in _newest_first(events.values())]


def project_events(events: Mapping[str, TimelineEvent], project_id: str) -> list[TimelineEvent]:
    """A project's events, newest first."""
    return _newest_first(event for event in events.values() if event.project_id == project_id)


def latest_event_date(events: Iterable[TimelineEvent], event_type: str) -> str | None:
    """Date of the first event of ``event_type``; expects newest-first input."""
    for event in events:
        if event.type == event_type:
            return event.date
    return None
