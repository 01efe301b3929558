from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

SHANGHAI_TZID = "Asia/Shanghai"
SHANGHAI_ALIASES = {"Asia/Shanghai", "Asia/Chongqing", "Asia/Harbin"}


def shanghai_offset_minutes() -> int:
    # China has no DST, a fixed offset is enough
    return 8 * 60


def shanghai_tz() -> timezone:
    return timezone(timedelta(minutes=shanghai_offset_minutes()), "CST")


def to_shanghai(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(shanghai_tz())


def now_in_shanghai(now: datetime | None = None) -> datetime:
    return to_shanghai(now if now is not None else datetime.now(timezone.utc))


def parse_hhmm(value: str) -> tuple[int, int]:
    hour_raw, minute_raw = value.split(":", 1)
    return int(hour_raw), int(minute_raw)


def next_broadcast_date(day_of_week: int, time_str: str, *, now: datetime | None = None) -> datetime:
    """Next wall-clock occurrence of ``day_of_week`` (0=Sunday) at ``time_str`` in UTC+8.

    An occurrence scheduled for exactly ``now`` counts as already passed and
    rolls to the following week.
    """
    hour, minute = parse_hhmm(time_str)
    current = now_in_shanghai(now)
    today = (current.weekday() + 1) % 7
    diff = (day_of_week - today + 7) % 7
    if diff == 0 and (current.hour > hour or (current.hour == hour and current.minute >= minute)):
        diff = 7
    target = current + timedelta(days=diff)
    return target.replace(hour=hour, minute=minute, second=0, microsecond=0)


def shanghai_today(now: datetime | None = None) -> date:
    return now_in_shanghai(now).date()


def shanghai_midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=shanghai_tz())


def format_local(value: datetime) -> str:
    """Format as a floating ICS token in Shanghai wall-clock time."""
    return to_shanghai(value).strftime("%Y%m%dT%H%M%S")


def format_date(value: datetime | date) -> str:
    if isinstance(value, datetime):
        value = to_shanghai(value).date()
    return value.strftime("%Y%m%d")


def format_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def ics_timestamp(now: datetime | None = None) -> str:
    return format_utc(now if now is not None else datetime.now(timezone.utc))
