# Overview: UTC clock, sale-number epoch and ISO-8601 helpers.

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a UTC-naive datetime; every stored timestamp uses this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the Unix epoch for a UTC-naive datetime (default: now)."""
    moment = (dt or utcnow()).replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    ISO-8601 text -> UTC-naive datetime.

    Blank input gives None. Text without an offset is taken as UTC; a "Z"
    or "+HH:MM" offset is converted to UTC before the tzinfo is dropped.
    """
    text = (value or "").strip()
    if not text:
        return None

    parsed = datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date_range(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Turn report date filters into an inclusive datetime window.

    Plain dates ("2026-01-31") cover the whole day, so an end date is
    widened to 23:59:59.999999. Full datetimes are used as given.
    """
    return (
        _parse_day_or_datetime(start, end_of_day=False),
        _parse_day_or_datetime(end, end_of_day=True),
    )


def _parse_day_or_datetime(value: Optional[str], *, end_of_day: bool) -> Optional[datetime]:
    text = (value or "").strip()
    if not text:
        return None
    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), time.max if end_of_day else time.min)
    return parse_iso_datetime(text)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Datetime -> "YYYY-MM-DDTHH:MM:SSZ" (seconds precision).

    Naive values are already UTC; aware values are converted first.
    """
    if dt is None:
        return None
    aware = dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)
    return aware.replace(microsecond=0, tzinfo=None).isoformat() + "Z"
