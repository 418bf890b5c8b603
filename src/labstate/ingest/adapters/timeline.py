"""Authored timeline document adapter (timeline.yaml / admin timeline.md)."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any

import structlog
import yaml  # type: ignore[import-untyped]

from labstate.dates import parse_timestamp
from labstate.documents import load_yaml_document
from labstate.ingest.adapters.base import AdapterError, ProjectRoot
from labstate.ingest.keys import timeline_entry_id
from labstate.ingest.signals import RawSignal, SignalMetadata, SignalSource, TimelineEntryPayload

logger = structlog.get_logger()

DEFAULT_ENTRY_TYPE = "milestone"
# Admin timeline.md entries record decisions unless typed otherwise
ADMIN_ENTRY_TYPE = "decision"


def _date_text(value: Any) -> str:
    # YAML turns unquoted dates into date objects
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value).strip()


class TimelineAdapter:
    """Turns a document with an ``events:`` list into manual signals.

    Each entry needs a ``date``; ``type`` (falling back to ``default_type``),
    ``title``, ``body``/``description``, ``details`` and an explicit ``id``
    are optional. Entries without an ``id`` get one derived from project,
    date and title so unedited entries keep their identity across runs.
    """

    def __init__(
        self,
        filename: str = "timeline.yaml",
        root: ProjectRoot = ProjectRoot.REPOSITORY,
        default_type: str = DEFAULT_ENTRY_TYPE,
    ):
        self._filename = filename
        self._root = root
        self._default_type = default_type

    @property
    def name(self) -> str:
        return f"timeline:{self._filename}"

    @property
    def root(self) -> ProjectRoot:
        return self._root

    def fetch_signals(self, project_root: Path, project_id: str) -> list[RawSignal]:
        path = project_root / self._filename
        if not path.exists():
            return []

        try:
            entries = self._load_entries(path)
        except AdapterError as exc:
            logger.warning("Invalid timeline document", path=str(path), error=str(exc))
            return []
        except Exception:
            logger.exception("Failed to parse timeline document", path=str(path))
            return []

        signals: list[RawSignal] = []
        for index, entry in enumerate(entries):
            signal = self._entry_to_signal(entry, project_id)
            if signal is None:
                logger.warning("Skipping timeline entry", path=str(path), index=index)
                continue
            signals.append(signal)

        logger.info("Timeline entries ingested", project=project_id, document=self._filename, entries=len(signals))
        return signals

    def _load_entries(self, path: Path) -> list[Any]:
        try:
            data, _body = load_yaml_document(path)
        except (ValueError, yaml.YAMLError) as exc:
            raise AdapterError(str(exc)) from exc
        events = data.get("events")
        if not isinstance(events, list):
            raise AdapterError("missing 'events' list")
        return events

    def _entry_to_signal(self, entry: Any, project_id: str) -> RawSignal | None:
        if not isinstance(entry, dict) or entry.get("date") in (None, ""):
            return None

        entry_date = _date_text(entry["date"])
        try:
            timestamp = parse_timestamp(entry["date"])
        except ValueError:
            return None

        title = str(entry.get("title") or "").strip()
        entry_type = str(entry.get("type") or self._default_type).strip().lower()
        explicit_id = entry.get("id")
        signal_id = str(explicit_id) if explicit_id else timeline_entry_id(project_id, entry_date, title)
        details = entry.get("details")
        body = entry.get("body") or entry.get("description") or ""

        return RawSignal(
            id=signal_id,
            project_id=project_id,
            source=SignalSource.MANUAL,
            timestamp=timestamp,
            data=TimelineEntryPayload(
                title=title,
                type=entry_type,
                date=entry_date,
                body=str(body).strip(),
                details=details if isinstance(details, dict) else {},
                source=entry.get("source"),
            ),
            metadata=SignalMetadata(category=entry_type),
        )
