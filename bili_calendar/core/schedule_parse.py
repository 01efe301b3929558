from __future__ import annotations

import re
from datetime import date

from bili_calendar.core.models import ScheduleInfo

_WEEKDAY_GLYPHS = {
    "日": 0,
    "一": 1,
    "二": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
}
_RRULE_WEEKDAYS = ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]
_DEFAULT_DAY = 1

_GLYPH = "[日一二三四五六]"
_TIME = r"\d{1,2}:\d{2}"

# Tried in order, first usable match wins.
_BROADCAST_PATTERNS = [
    re.compile(rf"(?:(?:每周|周)({_GLYPH}))?.*?({_TIME})"),
    re.compile(rf"({_GLYPH}).*?({_TIME})"),
    re.compile(rf"()({_TIME})"),
    re.compile(rf"(?:.*?日起)?({_GLYPH})?.*?({_TIME})"),
    re.compile(rf"(?:.*?起)?({_GLYPH})?.*?({_TIME})"),
]
_NEW_EP_FALLBACK = _BROADCAST_PATTERNS[3]
_DATETIME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2}):\d{2}$")


def parse_broadcast_time(text: str | None) -> ScheduleInfo | None:
    if not text:
        return None
    for pattern in _BROADCAST_PATTERNS:
        info = _match_schedule(pattern, text)
        if info is not None:
            return info
    return None


def parse_new_ep_time(text: str | None) -> ScheduleInfo | None:
    """Parse the upstream new-episode publish time.

    ``YYYY-MM-DD HH:MM:SS`` stamps are Beijing wall-clock time, so the weekday
    comes straight from the calendar date. Anything else goes through the
    descriptive ``...日起周四 20:00`` pattern.
    """
    if not text:
        return None
    match = _DATETIME_RE.match(text)
    if match:
        year, month, day, hour, minute = (int(part) for part in match.groups())
        try:
            air_date = date(year, month, day)
        except ValueError:
            air_date = None
        if air_date is not None and _valid_time(hour, minute):
            day_of_week = (air_date.weekday() + 1) % 7
            return ScheduleInfo(
                day_of_week=day_of_week,
                time=f"{hour:02d}:{minute:02d}",
                rrule_weekday=_RRULE_WEEKDAYS[day_of_week],
            )
    return _match_schedule(_NEW_EP_FALLBACK, text)


def weekday_code(day_of_week: int) -> str:
    return _RRULE_WEEKDAYS[day_of_week % 7]


def _match_schedule(pattern: re.Pattern[str], text: str) -> ScheduleInfo | None:
    match = pattern.search(text)
    if not match:
        return None
    glyph, time_raw = match.group(1), match.group(2)
    normalized = _normalize_time(time_raw)
    if normalized is None:
        return None
    day_of_week = _WEEKDAY_GLYPHS.get(glyph or "", _DEFAULT_DAY)
    return ScheduleInfo(
        day_of_week=day_of_week,
        time=normalized,
        rrule_weekday=_RRULE_WEEKDAYS[day_of_week],
    )


def _normalize_time(value: str | None) -> str | None:
    if not value:
        return None
    hour_raw, minute_raw = value.split(":", 1)
    hour, minute = int(hour_raw), int(minute_raw)
    if not _valid_time(hour, minute):
        return None
    return f"{hour:02d}:{minute:02d}"


def _valid_time(hour: int, minute: int) -> bool:
    return 0 <= hour <= 23 and 0 <= minute <= 59
