from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Sequence

from bili_calendar.core.calendar_builder import build_show_events, calendar_header
from bili_calendar.core.conflicts import detect_conflicts
from bili_calendar.core.ics_parser import parse_ics_events, resolve_tz
from bili_calendar.core.ics_text import escape_ics_text, join_lines
from bili_calendar.core.models import CalendarEvent, ExternalCalendar, ShowRecord
from bili_calendar.core.shanghai_time import SHANGHAI_TZID, format_utc, ics_timestamp

LOGGER = logging.getLogger(__name__)

EXTERNAL_FALLBACK_SOURCE = "external"


def conflict_note(names: set[str]) -> str:
    return f"⚠️ 与 {', '.join(sorted(names))} 时间重叠"


def build_ics_from_events(
    events: Sequence[CalendarEvent],
    *,
    uid: str | int,
    title: str | None = None,
    now: datetime | None = None,
) -> str:
    dtstamp = ics_timestamp(now)
    lines = calendar_header(prodid="-//Bili-Calendar//EN", name=title or f"B站追番聚合 (UID: {uid})")
    conflicts = detect_conflicts(events)
    for event in events:
        lines.extend(_event_lines(event, conflicts.get(event.base_uid), dtstamp))
    lines.append("END:VCALENDAR")
    return join_lines(lines)


def generate_merged_ics(
    records: Sequence[ShowRecord | dict],
    uid: str | int,
    external_sources: Sequence[ExternalCalendar] = (),
    *,
    now: datetime | None = None,
) -> str | None:
    """Merge native show events with external calendars, annotating overlaps.

    A source that fails to parse is logged and skipped. Returns ``None`` when
    neither side produced any event.
    """
    if not isinstance(external_sources, (list, tuple)):
        raise TypeError(f"external sources must be a list, got {type(external_sources).__name__}")
    events = build_show_events(records, now=now)
    native_count = len(events)
    for calendar in external_sources:
        source = calendar.url or EXTERNAL_FALLBACK_SOURCE
        try:
            events.extend(parse_ics_events(calendar.ics_text, source))
        except Exception as exc:
            LOGGER.warning("External ICS parse failed: source=%s error=%s", source, exc)
    if not events:
        return None
    LOGGER.info(
        "Merged calendar: uid=%s native=%s external=%s sources=%s",
        uid,
        native_count,
        len(events) - native_count,
        len(external_sources),
    )
    return build_ics_from_events(
        events,
        uid=uid,
        title=f"B站追番聚合 (UID: {uid}, 外部源 {len(external_sources)} 个)",
        now=now,
    )


def _event_lines(event: CalendarEvent, conflicts: set[str] | None, dtstamp: str) -> list[str]:
    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.uid}",
        f"DTSTAMP:{event.dtstamp or dtstamp}",
        *_datetime_lines(event),
    ]
    if event.rrule:
        lines.append(f"RRULE:{event.rrule}")
    description = event.description
    if conflicts:
        description += f"\n{conflict_note(conflicts)}"
    lines.append(f"SUMMARY:{escape_ics_text(event.summary)}")
    if description:
        lines.append(f"DESCRIPTION:{escape_ics_text(description)}")
    if event.url:
        lines.append(f"URL;VALUE=URI:{event.url}")
    lines.append(f"X-BC-SOURCE:{event.source}")
    lines.append("END:VEVENT")
    return lines


def _datetime_lines(event: CalendarEvent) -> list[str]:
    if event.is_all_day:
        start_day = event.start.date()
        end_day = event.end.astimezone(event.start.tzinfo).date()
        if end_day <= start_day:
            end_day = start_day + timedelta(days=1)
        return [
            f"DTSTART;VALUE=DATE:{event.raw_start or start_day.strftime('%Y%m%d')}",
            f"DTEND;VALUE=DATE:{end_day.strftime('%Y%m%d')}",
        ]
    if event.raw_start and event.raw_start.endswith("Z"):
        return [f"DTSTART:{event.raw_start}", f"DTEND:{format_utc(event.end)}"]
    tzid = event.tzid or SHANGHAI_TZID
    frame = resolve_tz(tzid)
    start_token = event.raw_start or event.start.astimezone(frame).strftime("%Y%m%dT%H%M%S")
    end_token = event.end.astimezone(frame).strftime("%Y%m%dT%H%M%S")
    param = _tzid_param(tzid)
    return [f"DTSTART;TZID={param}:{start_token}", f"DTEND;TZID={param}:{end_token}"]


def _tzid_param(tzid: str) -> str:
    if any(char in tzid for char in ":;,"):
        return f'"{tzid}"'
    return tzid
