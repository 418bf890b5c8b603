"""Commit noise classification."""

from __future__ import annotations

from collections.abc import Callable

NoisePredicate = Callable[[str], bool]

NOISE_PREFIXES = ("chore", "merge", "wip")


def is_noise_commit(message: str) -> bool:
    """Flag housekeeping commits (chore/merge/wip prefixes, any case)."""
    return (message or "").lstrip().lower().startswith(NOISE_PREFIXES)
