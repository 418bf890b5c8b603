"""Helpers for stable signal keys across sources."""

from __future__ import annotations

from uuid import UUID, uuid5

TIMELINE_NAMESPACE = UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")
PULSE_NAMESPACE = UUID("6ba7b811-9dad-11d1-80b4-00c04fd430c8")


def timeline_entry_id(project_id: str, entry_date: str, title: str) -> str:
    """ID for a timeline entry that does not carry an explicit one."""
    return str(uuid5(TIMELINE_NAMESPACE, f"{project_id}-{entry_date}-{title}"))


def pulse_id(project_id: str, day: str) -> str:
    return str(uuid5(PULSE_NAMESPACE, f"{project_id}-{day}"))
