from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from tazk.domain.recurring.recurrence import (
    compute_first_occurrence,
    compute_next_occurrence,
    frontend_weekday,
    parse_time_of_day,
)

# 2024-03-11 is a Monday
MONDAY = datetime(2024, 3, 11, 10, 0)


def test_daily_is_next_day_at_time_of_day():
    result = compute_next_occurrence("daily", "09:00", datetime(2024, 3, 10, 14, 37, 12, 500))
    assert result == datetime(2024, 3, 11, 9, 0)


def test_seconds_in_time_of_day_are_ignored():
    result = compute_next_occurrence("daily", "08:30:45", MONDAY)
    assert result == datetime(2024, 3, 12, 8, 30)


def test_weekly_picks_next_configured_weekday():
    # Monday and Wednesday
    result = compute_next_occurrence("weekly", "09:00", MONDAY, days_of_week=[1, 3])
    assert result == datetime(2024, 3, 13, 9, 0)


def test_weekly_single_day_is_seven_days_ahead():
    result = compute_next_occurrence("weekly", "09:00", MONDAY, days_of_week=[1])
    assert result == datetime(2024, 3, 18, 9, 0)


def test_weekly_sunday_is_zero():
    saturday = datetime(2024, 3, 16, 20, 0)
    result = compute_next_occurrence("weekly", "07:15", saturday, days_of_week=[0])
    assert result == datetime(2024, 3, 17, 7, 15)
    assert frontend_weekday(result) == 0


def test_weekly_without_days_adds_a_week():
    result = compute_next_occurrence("weekly", "09:00", MONDAY, days_of_week=[])
    assert result == datetime(2024, 3, 18, 9, 0)


@pytest.mark.parametrize(
    "from_date,day_of_month,expected",
    [
        (datetime(2024, 1, 31, 9, 0), 31, datetime(2024, 2, 29, 9, 0)),
        (datetime(2023, 1, 31, 9, 0), 31, datetime(2023, 2, 28, 9, 0)),
        (datetime(2024, 12, 15, 9, 0), 15, datetime(2025, 1, 15, 9, 0)),
        (datetime(2024, 2, 29, 9, 0), 31, datetime(2024, 3, 31, 9, 0)),
    ],
)
def test_monthly_clamps_to_month_length(from_date, day_of_month, expected):
    assert compute_next_occurrence("monthly", "09:00", from_date, day_of_month=day_of_month) == expected


def test_monthly_defaults_to_first_day():
    result = compute_next_occurrence("monthly", "09:00", datetime(2024, 3, 20, 9, 0))
    assert result == datetime(2024, 4, 1, 9, 0)


def test_unknown_frequency_raises():
    with pytest.raises(ValueError):
        compute_next_occurrence("hourly", "09:00", MONDAY)


@pytest.mark.parametrize("value", ["9", "25:00", "12:75", "noon", ""])
def test_invalid_time_of_day_raises(value):
    with pytest.raises(ValueError):
        parse_time_of_day(value)


def test_timezone_aware_values_keep_their_zone():
    zone = ZoneInfo("Europe/Paris")
    result = compute_next_occurrence("daily", "09:00", datetime(2024, 3, 11, 22, 0, tzinfo=zone))
    assert result == datetime(2024, 3, 12, 9, 0, tzinfo=zone)
    assert result.tzinfo is zone


def test_first_daily_run_is_today_when_time_is_ahead():
    now = datetime(2024, 3, 11, 8, 0)
    assert compute_first_occurrence("daily", "09:00", now) == datetime(2024, 3, 11, 9, 0)


def test_first_daily_run_is_tomorrow_when_time_has_passed():
    assert compute_first_occurrence("daily", "09:00", MONDAY) == datetime(2024, 3, 12, 9, 0)


def test_first_weekly_run_skips_to_next_matching_day():
    assert compute_first_occurrence("weekly", "09:00", MONDAY, days_of_week=[3]) == datetime(2024, 3, 13, 9, 0)
    assert compute_first_occurrence("weekly", "09:00", MONDAY, days_of_week=[1]) == datetime(2024, 3, 18, 9, 0)
    assert compute_first_occurrence("weekly", "11:00", MONDAY, days_of_week=[1]) == datetime(2024, 3, 11, 11, 0)


def test_first_monthly_run():
    assert compute_first_occurrence("monthly", "09:00", MONDAY, day_of_month=15) == datetime(2024, 3, 15, 9, 0)
    assert compute_first_occurrence("monthly", "09:00", MONDAY, day_of_month=5) == datetime(2024, 4, 5, 9, 0)
    assert compute_first_occurrence("monthly", "09:00", datetime(2024, 2, 10), day_of_month=31) == datetime(
        2024, 2, 29, 9, 0
    )


def test_monthly_clamp_keeps_the_zone():
    zone = ZoneInfo("Europe/Paris")
    result = compute_next_occurrence("monthly", "09:00", datetime(2024, 1, 31, 9, 0, tzinfo=zone), day_of_month=31)
    assert result == datetime(2024, 2, 29, 9, 0, tzinfo=zone)
    assert result.tzinfo is zone
