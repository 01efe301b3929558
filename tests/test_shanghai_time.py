from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from bili_calendar.core.shanghai_time import (
    format_date,
    format_local,
    format_utc,
    next_broadcast_date,
    shanghai_offset_minutes,
    shanghai_tz,
)


def test_offset_is_fixed_utc_plus_eight() -> None:
    assert shanghai_offset_minutes() == 480
    assert shanghai_tz().utcoffset(None) == timedelta(hours=8)


def test_same_day_later_time_stays_today(fixed_now) -> None:
    result = next_broadcast_date(3, "10:01", now=fixed_now)
    assert result == datetime(2025, 1, 1, 10, 1, tzinfo=shanghai_tz())


def test_exactly_now_rolls_to_next_week(fixed_now) -> None:
    result = next_broadcast_date(3, "10:00", now=fixed_now)
    assert result == datetime(2025, 1, 8, 10, 0, tzinfo=shanghai_tz())


def test_earlier_time_today_rolls_to_next_week(fixed_now) -> None:
    result = next_broadcast_date(3, "09:59", now=fixed_now)
    assert result.date().isoformat() == "2025-01-08"


def test_future_weekday_in_same_week(fixed_now) -> None:
    result = next_broadcast_date(4, "09:00", now=fixed_now)
    assert result == datetime(2025, 1, 2, 9, 0, tzinfo=shanghai_tz())


def test_past_weekday_wraps(fixed_now) -> None:
    result = next_broadcast_date(2, "23:00", now=fixed_now)
    assert result == datetime(2025, 1, 7, 23, 0, tzinfo=shanghai_tz())


def test_shanghai_date_differs_from_utc_date() -> None:
    # 17:00 UTC on Wednesday is already 01:00 Thursday in Shanghai
    now = datetime(2025, 1, 1, 17, 0, tzinfo=timezone.utc)
    result = next_broadcast_date(4, "00:30", now=now)
    assert result == datetime(2025, 1, 9, 0, 30, tzinfo=shanghai_tz())


@pytest.mark.parametrize("day", range(7))
@pytest.mark.parametrize("time_str", ["00:00", "10:00", "23:59"])
def test_result_matches_weekday_and_is_not_past(fixed_now, day: int, time_str: str) -> None:
    result = next_broadcast_date(day, time_str, now=fixed_now)
    assert (result.weekday() + 1) % 7 == day
    assert result.strftime("%H:%M") == time_str
    assert result > fixed_now
    assert result - fixed_now <= timedelta(days=7)


def test_naive_now_is_treated_as_utc() -> None:
    aware = next_broadcast_date(5, "20:00", now=datetime(2025, 1, 1, 2, 0, tzinfo=timezone.utc))
    naive = next_broadcast_date(5, "20:00", now=datetime(2025, 1, 1, 2, 0))
    assert aware == naive


def test_formatters() -> None:
    value = datetime(2025, 1, 2, 21, 0, tzinfo=shanghai_tz())
    assert format_local(value) == "20250102T210000"
    assert format_date(value) == "20250102"
    assert format_utc(value) == "20250102T130000Z"
