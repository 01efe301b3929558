from __future__ import annotations

import dataclasses
import re
from datetime import timedelta
from typing import Iterable

from bili_calendar.core.models import RECURRENCE_COUNT, CalendarEvent

_WEEKLY_RE = re.compile(r"FREQ=WEEKLY", re.IGNORECASE)
_ONE_WEEK = timedelta(days=7)


def is_overlap(a: CalendarEvent, b: CalendarEvent) -> bool:
    return a.start < b.end and b.start < a.end


def expand_recurring(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Materialize the future weekly occurrences implied by ``COUNT=RECURRENCE_COUNT``."""
    expanded: list[CalendarEvent] = []
    for event in events:
        expanded.append(event)
        if not event.rrule or not _WEEKLY_RE.search(event.rrule):
            continue
        if event.start is None or event.end is None:
            continue
        for occurrence in range(1, RECURRENCE_COUNT):
            delta = _ONE_WEEK * occurrence
            expanded.append(
                dataclasses.replace(
                    event,
                    uid=f"{event.uid}#r{occurrence}",
                    start=event.start + delta,
                    end=event.end + delta,
                    base_uid=event.base_uid,
                )
            )
    return expanded


def detect_conflicts(events: Iterable[CalendarEvent]) -> dict[str, set[str]]:
    """Map each event's ``base_uid`` to the summaries of events it overlaps."""
    conflicts: dict[str, set[str]] = {}
    ordered = sorted(expand_recurring(events), key=lambda item: item.start)
    for i, a in enumerate(ordered):
        for j in range(i + 1, len(ordered)):
            b = ordered[j]
            # sorted by start, nothing later can overlap a
            if a.end <= b.start:
                break
            if (a.base_uid == b.base_uid and a.source == b.source) or not is_overlap(a, b):
                continue
            conflicts.setdefault(a.base_uid, set()).add(b.summary)
            conflicts.setdefault(b.base_uid, set()).add(a.summary)
    return conflicts
