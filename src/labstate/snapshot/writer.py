"""Crash-safe persistence of the lab-state snapshot."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from labstate.snapshot.schema import EVENT_TYPES, REQUIRED_TOP_LEVEL_KEYS, LabState, TimelineEvent

logger = structlog.get_logger()


class SnapshotWriteError(RuntimeError):
    """The snapshot was not updated; the previous file is untouched."""


class SnapshotValidationError(SnapshotWriteError):
    """The serialized snapshot did not round-trip into a valid shape."""


def is_valid_shape(data: Any) -> bool:
    return isinstance(data, dict) and all(key in data for key in REQUIRED_TOP_LEVEL_KEYS)


class SnapshotWriter:
    """Sole reader and writer of the snapshot file at ``path``.

    ``write`` goes through ``<path>.tmp``: serialize, read back, re-parse,
    check the required top-level keys, then rename over the target. A
    failure before the rename removes the temp file and re-raises, so the
    target is either the old snapshot or the new one, never a partial file.
    Single writer at a time is assumed.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self.temp_path = self.path.with_name(f"{self.path.name}.tmp")

    def write(self, state: LabState | Mapping[str, Any]) -> None:
        try:
            payload = state.model_dump(mode="json") if isinstance(state, LabState) else dict(state)
            content = json.dumps(payload, indent=2, ensure_ascii=False)

            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.temp_path.write_text(content, encoding="utf-8")

            parsed = json.loads(self.temp_path.read_text(encoding="utf-8"))
            if not is_valid_shape(parsed):
                raise SnapshotValidationError(
                    f"Snapshot validation failed: requires top-level keys {', '.join(REQUIRED_TOP_LEVEL_KEYS)}"
                )

            os.replace(self.temp_path, self.path)
        except Exception:
            logger.exception("Failed to write snapshot", path=str(self.path))
            self._remove_temp()
            raise

        logger.info("Snapshot written", path=str(self.path))

    def read(self) -> LabState | None:
        """Return the previous snapshot, or None when absent or unreadable.

        Timeline events are read leniently: unknown event types become
        milestones and events that still do not validate are dropped, so one
        bad event never discards the rest of the snapshot.
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Existing snapshot unreadable, treating as cold start", path=str(self.path), error=str(exc))
            return None
        if not is_valid_shape(data):
            logger.warning("Existing snapshot missing required keys, treating as cold start", path=str(self.path))
            return None

        data["timeline_events"] = self._readable_events(data["timeline_events"])
        try:
            return LabState.model_validate(data)
        except ValidationError as exc:
            logger.warning("Existing snapshot invalid, treating as cold start", path=str(self.path), error=str(exc))
            return None

    def _readable_events(self, raw_events: Any) -> dict[str, TimelineEvent]:
        if not isinstance(raw_events, dict):
            logger.warning("Snapshot timeline events are not a mapping, dropping them", path=str(self.path))
            return {}

        events: dict[str, TimelineEvent] = {}
        for event_id, raw in raw_events.items():
            if isinstance(raw, dict) and raw.get("type") not in EVENT_TYPES:
                raw = {**raw, "type": "milestone"}
            try:
                events[event_id] = TimelineEvent.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Dropping unreadable timeline event", event=event_id, error=str(exc))
        return events

    def _remove_temp(self) -> None:
        try:
            self.temp_path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temp snapshot", path=str(self.temp_path))
