"""
Next-occurrence calculation for recurring task rules.

Weekday numbers follow the convention stored by the frontend: 0 = Sunday,
1 = Monday ... 6 = Saturday.

All functions work on wall-clock datetimes; tz-aware values keep their
tzinfo, naive values stay naive.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

MAX_WEEKLY_SCAN_DAYS = 7


def parse_time_of_day(time_of_day: str) -> tuple[int, int]:
    """Parse 'HH:MM' or 'HH:MM:SS' into (hours, minutes)"""
    try:
        parts = [int(p) for p in time_of_day.strip().split(":")]
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid time_of_day: {time_of_day!r}") from e

    if len(parts) < 2 or len(parts) > 3:
        raise ValueError(f"Invalid time_of_day: {time_of_day!r}")

    hours, minutes = parts[0], parts[1]
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time_of_day: {time_of_day!r}")
    return hours, minutes


def frontend_weekday(value: datetime) -> int:
    """Weekday with Sunday = 0 (Python's weekday() has Monday = 0)"""
    return value.isoweekday() % 7


def _at_time(value: datetime, hours: int, minutes: int) -> datetime:
    return value.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def compute_next_occurrence(
    frequency: str,
    time_of_day: str,
    from_date: datetime,
    days_of_week: Optional[Iterable[int]] = None,
    day_of_month: Optional[int] = None,
) -> datetime:
    """
    Compute when a rule fires next after a run at `from_date`.

    - daily: the following day at time_of_day
    - weekly: the first configured weekday after from_date (scan bounded at 7
      days); without configured days, the same weekday one week later
    - monthly: one calendar month ahead, day_of_month clamped to the month's
      length (Jan 31 -> Feb 28/29)
    """
    hours, minutes = parse_time_of_day(time_of_day)
    weekdays = set(days_of_week or [])

    if frequency == "daily":
        return _at_time(from_date + timedelta(days=1), hours, minutes)

    if frequency == "weekly":
        if not weekdays:
            return _at_time(from_date + timedelta(days=7), hours, minutes)

        next_date = _at_time(from_date + timedelta(days=1), hours, minutes)
        for _ in range(MAX_WEEKLY_SCAN_DAYS):
            if frontend_weekday(next_date) in weekdays:
                break
            next_date += timedelta(days=1)
        return next_date

    if frequency == "monthly":
        target_day = day_of_month or 1
        return _at_time(from_date + relativedelta(months=+1, day=target_day), hours, minutes)

    raise ValueError(f"Unsupported frequency: {frequency!r}")


def compute_first_occurrence(
    frequency: str,
    time_of_day: str,
    now: datetime,
    days_of_week: Optional[Iterable[int]] = None,
    day_of_month: Optional[int] = None,
) -> datetime:
    """
    First run for a newly saved rule: today at time_of_day, or tomorrow when
    that moment has already passed, then aligned to the weekly/monthly rule.
    """
    hours, minutes = parse_time_of_day(time_of_day)
    weekdays = set(days_of_week or [])

    next_date = _at_time(now, hours, minutes)
    if next_date <= now:
        next_date += timedelta(days=1)

    if frequency == "daily":
        return next_date

    if frequency == "weekly":
        for offset in range(MAX_WEEKLY_SCAN_DAYS):
            candidate = next_date + timedelta(days=offset)
            if not weekdays or frontend_weekday(candidate) in weekdays:
                return candidate
        return next_date

    if frequency == "monthly":
        target_day = day_of_month or 1
        candidate = _at_time(now + relativedelta(day=target_day), hours, minutes)
        if candidate <= now:
            candidate = _at_time(now + relativedelta(months=+1, day=target_day), hours, minutes)
        return candidate

    raise ValueError(f"Unsupported frequency: {frequency!r}")
