"""Calendar-day arithmetic shared by the analytic components.

Everything works on whole local calendar days; times of day only appear
when a notification fire time is built.  Malformed input raises
``ValueError``; callers validate at the UI boundary.
"""

from __future__ import annotations

import calendar
import math
import re
from datetime import date, datetime, time, timedelta

_TIME_OF_DAY_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

# frequency → (days, months) to advance per occurrence
_FREQUENCY_STEPS: dict[str, tuple[int, int]] = {
    "daily": (1, 0),
    "weekly": (7, 0),
    "monthly": (0, 1),
    "quarterly": (0, 3),
}


def parse_iso_date(value: date | datetime | str) -> date:
    """Coerce a date, datetime or ``YYYY-MM-DD`` string to a date.

    A full ISO timestamp string is accepted and truncated to its date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text).date()
        except ValueError as exc:
            raise ValueError(f"Malformed ISO date: {value!r}") from exc
    raise ValueError(f"Expected a date or ISO date string, got {type(value).__name__}")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves up (2.5 → 3)."""
    return math.floor(value + 0.5)


def to_iso(day: date) -> str:
    return day.isoformat()


def days_between(start: date, end: date) -> int:
    """Signed number of calendar days from ``start`` to ``end``."""
    return (end - start).days


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of a shorter month.

    >>> add_months(date(2024, 1, 31), 1)
    datetime.date(2024, 2, 29)
    """
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` 24-hour string."""
    match = _TIME_OF_DAY_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Malformed time of day (expected HH:MM): {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time of day out of range: {value!r}")
    return time(hours, minutes)


def at_time(day: date, time_of_day: str | time) -> datetime:
    """Combine a calendar day with an ``HH:MM`` string (seconds zeroed)."""
    if isinstance(time_of_day, str):
        time_of_day = parse_time_of_day(time_of_day)
    return datetime.combine(day, time_of_day.replace(second=0, microsecond=0))


def next_daily_fire_time(time_of_day: str, now: datetime) -> datetime:
    """Today at ``time_of_day``, or tomorrow if that moment is not in the future."""
    fire_at = at_time(now.date(), time_of_day)
    if fire_at <= now:
        fire_at = at_time(now.date() + timedelta(days=1), time_of_day)
    return fire_at


def next_occurrence(time_of_day: str, frequency: str, now: datetime) -> datetime:
    """Next due time of a recurring reminder.

    Today at ``time_of_day`` if still ahead, otherwise one frequency step
    later (1 day, 7 days, 1 month or 3 months).
    """
    key = getattr(frequency, "value", frequency)
    if key not in _FREQUENCY_STEPS:
        raise ValueError(f"Unknown reminder frequency: {frequency!r}")

    fire_at = at_time(now.date(), time_of_day)
    if fire_at > now:
        return fire_at

    days, months = _FREQUENCY_STEPS[key]
    next_day = add_months(now.date(), months) if months else add_days(now.date(), days)
    return at_time(next_day, time_of_day)
