"""Raw signal contract for ingestion adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal


class SignalSource(str, Enum):
    GIT = "git"
    MANUAL = "manual"
    DEPLOY = "deploy"


@dataclass(frozen=True)
class CommitPayload:
    """One commit, local or remote."""

    hash: str
    message: str
    author_name: str | None = None
    author_email: str | None = None
    body: str = ""
    refs: str = ""
    url: str | None = None
    # Best-effort diff stats; 0 when the source does not report them
    lines_changed: int = 0
    file_count: int = 0
    kind: Literal["commit"] = "commit"


@dataclass(frozen=True)
class TimelineEntryPayload:
    """One authored timeline entry, kept close to the document shape."""

    title: str
    type: str
    date: str
    body: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    source: str | None = None
    kind: Literal["timeline_entry"] = "timeline_entry"


SignalPayload = CommitPayload | TimelineEntryPayload


@dataclass(frozen=True)
class SignalMetadata:
    is_noise: bool = False
    category: str | None = None


@dataclass(frozen=True)
class RawSignal:
    id: str
    project_id: str
    source: SignalSource
    timestamp: datetime
    data: SignalPayload
    metadata: SignalMetadata = field(default_factory=SignalMetadata)
