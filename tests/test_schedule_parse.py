from __future__ import annotations

import pytest

from bili_calendar.core.models import ScheduleInfo
from bili_calendar.core.schedule_parse import parse_broadcast_time, parse_new_ep_time, weekday_code


def test_parse_weekday_and_time() -> None:
    assert parse_broadcast_time("每周四 21:00 更新") == ScheduleInfo(4, "21:00", "TH")


def test_parse_sunday_glyph() -> None:
    assert parse_broadcast_time("周日 09:30") == ScheduleInfo(0, "09:30", "SU")


def test_parse_time_only_defaults_to_monday() -> None:
    assert parse_broadcast_time("仅 12:00 显示") == ScheduleInfo(1, "12:00", "MO")


def test_parse_single_digit_hour_is_zero_padded() -> None:
    info = parse_broadcast_time("每周六 9:05")
    assert info == ScheduleInfo(6, "09:05", "SA")


@pytest.mark.parametrize("value", [None, "", "暂无播出时间", "每周三更新"])
def test_parse_without_time_returns_none(value) -> None:
    assert parse_broadcast_time(value) is None


def test_parse_out_of_range_time_is_rejected() -> None:
    assert parse_broadcast_time("每周五 25:00") is None


def test_day_of_week_matches_rrule_weekday() -> None:
    for glyph, expected in zip("日一二三四五六", ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]):
        info = parse_broadcast_time(f"每周{glyph} 20:00")
        assert info is not None
        assert info.rrule_weekday == expected
        assert weekday_code(info.day_of_week) == expected


def test_parse_new_ep_time_uses_calendar_date() -> None:
    # 2024-08-08 is a Thursday
    assert parse_new_ep_time("2024-08-08 18:30:00") == ScheduleInfo(4, "18:30", "TH")


def test_parse_new_ep_time_sunday() -> None:
    assert parse_new_ep_time("2025-01-05 00:00:00") == ScheduleInfo(0, "00:00", "SU")


def test_parse_new_ep_time_descriptive_fallback() -> None:
    assert parse_new_ep_time("01月05日起 20:00更新") == ScheduleInfo(1, "20:00", "MO")


def test_parse_new_ep_time_glyph_after_prefix() -> None:
    assert parse_new_ep_time("四 22:30") == ScheduleInfo(4, "22:30", "TH")


@pytest.mark.parametrize("value", [None, "", "即将开播"])
def test_parse_new_ep_time_without_time(value) -> None:
    assert parse_new_ep_time(value) is None
