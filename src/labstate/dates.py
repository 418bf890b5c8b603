"""Date helpers shared by the ingestion and compute stages."""

from __future__ import annotations

import math
from datetime import UTC, date, datetime, time

from dateutil.parser import parse as parse_datetime  # type: ignore[import-untyped]

SECONDS_PER_DAY = 86_400
# Fields a partial date leaves out come from here, not from today
PARSE_DEFAULT = datetime(1970, 1, 1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: str | date | datetime) -> datetime:
    """Parse an ISO-ish timestamp or calendar date into an aware UTC datetime.

    Raises:
        ValueError: if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    try:
        return ensure_utc(parse_datetime(str(value), default=PARSE_DEFAULT))
    except (OverflowError, ValueError) as exc:
        raise ValueError(f"Unparseable timestamp: {value!r}") from exc


def utc_day(value: datetime) -> str:
    """Calendar day (YYYY-MM-DD) of a timestamp in UTC."""
    return ensure_utc(value).strftime("%Y-%m-%d")


def days_since(then: str | date | datetime, now: datetime) -> int:
    """Whole days elapsed between ``then`` and ``now``, never negative."""
    elapsed = (ensure_utc(now) - parse_timestamp(then)).total_seconds()
    return max(0, math.floor(elapsed / SECONDS_PER_DAY))


def isoformat(value: datetime) -> str:
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
