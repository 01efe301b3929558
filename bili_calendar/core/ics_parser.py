from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from icalendar import Calendar

from bili_calendar.core.models import CalendarEvent
from bili_calendar.core.shanghai_time import SHANGHAI_ALIASES, SHANGHAI_TZID, shanghai_tz

LOGGER = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)
UNTITLED_SUMMARY = "未命名事件"

_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_UTC_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})(?:T(\d{2})(\d{2})(\d{2})?)?Z$")
_FLOATING_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})$")


@dataclass(frozen=True)
class _DecodedTime:
    value: datetime
    is_all_day: bool
    raw: str
    tzid: str | None


def resolve_tz(tzid: str | None) -> tzinfo:
    if not tzid or tzid in SHANGHAI_ALIASES:
        return shanghai_tz()
    try:
        return ZoneInfo(tzid)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.debug("Unknown TZID %s, using host offset", tzid)
        return _host_tz()


def parse_ics_datetime(raw: str | None, tzid: str | None = SHANGHAI_TZID) -> tuple[datetime, bool] | None:
    """Decode a DTSTART/DTEND token into ``(aware datetime, is_all_day)``."""
    if not raw:
        return None
    try:
        match = _DATE_RE.match(raw)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return datetime(year, month, day, tzinfo=resolve_tz(tzid)), True
        match = _UTC_RE.match(raw)
        if match:
            year, month, day, hour, minute, second = (int(part or 0) for part in match.groups())
            return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc), False
        match = _FLOATING_RE.match(raw)
        if match:
            year, month, day, hour, minute, second = (int(part) for part in match.groups())
            return datetime(year, month, day, hour, minute, second, tzinfo=resolve_tz(tzid)), False
    except ValueError:
        LOGGER.debug("Invalid ICS datetime %s", raw)
    return None


def parse_ics_events(ics_text: str, source: str) -> list[CalendarEvent]:
    """Read every VEVENT of ``ics_text`` into events tagged with ``source``.

    Events without a decodable DTSTART are dropped. Text icalendar cannot read
    as a calendar raises ``ValueError``.
    """
    if not isinstance(ics_text, str):
        raise TypeError(f"ICS text must be str, got {type(ics_text).__name__}")
    calendar = Calendar.from_ical(ics_text)
    events: list[CalendarEvent] = []
    for vevent in calendar.walk("VEVENT"):
        start = _decode_time(vevent.get("DTSTART"))
        if start is None:
            continue
        end = _decode_time(vevent.get("DTEND"))
        uid = _text_value(vevent, "UID") or f"{source}-{len(events)}@merged.local"
        events.append(
            CalendarEvent(
                uid=uid,
                base_uid=uid,
                summary=_text_value(vevent, "SUMMARY") or UNTITLED_SUMMARY,
                description=_text_value(vevent, "DESCRIPTION") or "",
                start=start.value,
                end=end.value if end is not None else start.value + DEFAULT_DURATION,
                is_all_day=start.is_all_day,
                source=source,
                url=_text_value(vevent, "URL"),
                rrule=_text_value(vevent, "RRULE"),
                raw_start=start.raw,
                tzid=start.tzid,
            )
        )
    return events


def _first(prop):
    if isinstance(prop, list):
        return prop[0] if prop else None
    return prop


def _property_text(value) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) and hasattr(value, "to_ical"):
        value = value.to_ical()
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    return str(value).strip() or None


def _text_value(vevent, name: str) -> str | None:
    return _property_text(_first(vevent.get(name)))


def _decode_time(prop) -> _DecodedTime | None:
    prop = _first(prop)
    if prop is None:
        return None
    raw = _property_text(prop) or ""
    params = getattr(prop, "params", None) or {}
    tzid = params.get("TZID")
    decoded = getattr(prop, "dt", None)
    if isinstance(decoded, datetime) and decoded.tzinfo is not None and tzid not in SHANGHAI_ALIASES:
        value, is_all_day = decoded, False
    else:
        parsed = parse_ics_datetime(raw, tzid or SHANGHAI_TZID)
        if parsed is None:
            LOGGER.debug("Dropping undecodable ICS datetime %r", raw)
            return None
        value, is_all_day = parsed
    return _DecodedTime(
        value=value,
        is_all_day=is_all_day,
        raw=raw,
        tzid=None if raw.endswith("Z") else tzid or SHANGHAI_TZID,
    )


def _host_tz() -> tzinfo:
    return datetime.now().astimezone().tzinfo or timezone.utc
