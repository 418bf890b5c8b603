"""Adapter base types for signal ingestion."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Protocol

from labstate.ingest.signals import RawSignal


class ProjectRoot(Enum):
    """Which configured directory an adapter reads from."""

    REPOSITORY = "repository"
    CONTENT = "content"


class AdapterError(RuntimeError):
    """Raised inside an adapter when its source cannot be read."""


class SignalAdapter(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def root(self) -> ProjectRoot: ...

    def fetch_signals(self, project_root: Path, project_id: str) -> list[RawSignal]:
        """Return normalized signals; failures are logged and yield []."""
        ...
