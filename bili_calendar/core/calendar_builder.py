from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Sequence

from bili_calendar.core.ics_text import escape_ics_text, join_lines
from bili_calendar.core.models import (
    BILIBILI_SOURCE,
    RECURRENCE_COUNT,
    CalendarEvent,
    ScheduleInfo,
    ShowRecord,
    coerce_show_records,
)
from bili_calendar.core.schedule_parse import parse_broadcast_time, parse_new_ep_time
from bili_calendar.core.shanghai_time import (
    SHANGHAI_TZID,
    format_date,
    format_local,
    ics_timestamp,
    next_broadcast_date,
    shanghai_midnight,
    shanghai_today,
)

LOGGER = logging.getLogger(__name__)

UNKNOWN_TIME_PREFIX = "[时间未知] "
NO_SYNOPSIS = "暂无简介"
EVENT_DURATION = timedelta(hours=1)

VTIMEZONE_LINES = [
    "BEGIN:VTIMEZONE",
    f"TZID:{SHANGHAI_TZID}",
    "BEGIN:STANDARD",
    "DTSTART:19700101T000000",
    "TZOFFSETFROM:+0800",
    "TZOFFSETTO:+0800",
    "TZNAME:CST",
    "END:STANDARD",
    "END:VTIMEZONE",
]


def calendar_header(*, prodid: str, name: str) -> list[str]:
    return [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{prodid}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{name}",
        f"X-WR-TIMEZONE:{SHANGHAI_TZID}",
        *VTIMEZONE_LINES,
    ]


def resolve_schedule(record: ShowRecord) -> ScheduleInfo | None:
    info = parse_broadcast_time(record.broadcast_index)
    if info is None and record.new_episode is not None:
        info = parse_new_ep_time(record.new_episode.pub_time)
    if info is None:
        info = parse_broadcast_time(record.renewal_time)
    return info


def show_summary(record: ShowRecord) -> str:
    if record.season_title and record.season_title not in record.title:
        return f"{record.title} {record.season_title}"
    return record.title


def show_description(record: ShowRecord) -> str:
    parts: list[str] = []
    status = record.update_status_text
    if not status and record.new_episode is not None:
        status = record.new_episode.index_show
    if status:
        parts.append(f"🌟 更新状态: {status}")
    parts.append(f"➡️ 状态: {'已完结' if record.is_finished else '连载中'}")
    parts.append(f"✨ 番剧简介: {record.evaluate_text or NO_SYNOPSIS}")
    return " ".join(parts)


def show_url(season_id: str) -> str:
    return f"https://www.bilibili.com/bangumi/play/ss{season_id}"


def build_show_event(record: ShowRecord, *, now: datetime | None = None) -> CalendarEvent | None:
    if not record.title or not record.season_id:
        return None
    uid = f"{record.season_id}@bilibili.com"
    summary = show_summary(record)
    description = show_description(record)
    dtstamp = ics_timestamp(now)
    info = resolve_schedule(record)
    if info is None:
        start = shanghai_midnight(shanghai_today(now))
        return CalendarEvent(
            uid=uid,
            summary=f"{UNKNOWN_TIME_PREFIX}{summary}",
            description=description,
            start=start,
            end=start + timedelta(days=1),
            is_all_day=True,
            source=BILIBILI_SOURCE,
            url=show_url(record.season_id),
            raw_start=format_date(start),
            dtstamp=dtstamp,
        )
    start = next_broadcast_date(info.day_of_week, info.time, now=now)
    rrule = None
    if not record.is_finished:
        rrule = f"FREQ=WEEKLY;COUNT={RECURRENCE_COUNT};BYDAY={info.rrule_weekday}"
    return CalendarEvent(
        uid=uid,
        summary=summary,
        description=description,
        start=start,
        end=start + EVENT_DURATION,
        source=BILIBILI_SOURCE,
        url=show_url(record.season_id),
        rrule=rrule,
        raw_start=format_local(start),
        tzid=SHANGHAI_TZID,
        dtstamp=dtstamp,
    )


def build_show_events(records: Sequence[ShowRecord | dict], *, now: datetime | None = None) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    skipped = 0
    for record in coerce_show_records(records):
        event = build_show_event(record, now=now)
        if event is None:
            skipped += 1
            continue
        events.append(event)
    if skipped:
        LOGGER.debug("Skipped %s shows without title or season_id", skipped)
    return events


def generate_ics(records: Sequence[ShowRecord | dict], uid: str | int, *, now: datetime | None = None) -> str:
    lines = calendar_header(prodid="-//BiliCalendar//EN", name=f"B站追番 (UID: {uid})")
    for event in build_show_events(records, now=now):
        lines.extend(_show_event_lines(event))
    lines.append("END:VCALENDAR")
    return join_lines(lines)


def build_empty_calendar(uid: str | int, reason: str | None = None, *, now: datetime | None = None) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//BiliCalendarGenerator//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:B站追番（无内容）",
        f"X-WR-TIMEZONE:{SHANGHAI_TZID}",
        "BEGIN:VEVENT",
        f"UID:error-{uid}@bilibili.com",
        f"DTSTAMP:{ics_timestamp(now)}",
        f"DTSTART;VALUE=DATE:{format_date(shanghai_today(now))}",
        f"SUMMARY:{escape_ics_text('无法获取番剧信息：' + (reason or '未知'))}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return join_lines(lines)


def _show_event_lines(event: CalendarEvent) -> list[str]:
    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.uid}",
        f"DTSTAMP:{event.dtstamp}",
    ]
    if event.is_all_day:
        lines.append(f"DTSTART;VALUE=DATE:{event.raw_start}")
    else:
        lines.append(f"DTSTART;TZID={SHANGHAI_TZID}:{event.raw_start}")
    if event.rrule:
        lines.append(f"RRULE:{event.rrule}")
    lines.extend(
        [
            f"SUMMARY:{escape_ics_text(event.summary)}",
            f"DESCRIPTION:{escape_ics_text(event.description)}",
            f"URL;VALUE=URI:{event.url}",
            "END:VEVENT",
        ]
    )
    return lines
