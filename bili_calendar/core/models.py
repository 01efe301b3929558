from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Union

# Native weekly events carry COUNT=2; the conflict detector materializes the
# same number of occurrences.
RECURRENCE_COUNT = 2

BILIBILI_SOURCE = "bilibili"
PRIVACY_ERROR_CODE = 53013


@dataclass(frozen=True)
class ScheduleInfo:
    day_of_week: int
    time: str
    rrule_weekday: str


@dataclass(frozen=True)
class NewEpisode:
    pub_time: str | None = None
    index_show: str | None = None


@dataclass(frozen=True)
class ShowRecord:
    title: str
    season_id: str | None
    season_title: str | None = None
    is_finished: bool = True
    broadcast_index: str | None = None
    renewal_time: str | None = None
    new_episode: NewEpisode | None = None
    evaluate_text: str | None = None
    update_status_text: str | None = None

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> ShowRecord:
        """Decode one raw follow-list item from the Bilibili API."""
        new_ep_raw = item.get("new_ep")
        new_episode = None
        if isinstance(new_ep_raw, Mapping):
            new_episode = NewEpisode(
                pub_time=_optional_str(new_ep_raw.get("pub_time")),
                index_show=_optional_str(new_ep_raw.get("index_show")),
            )
        season_id = item.get("season_id")
        return cls(
            title=_optional_str(item.get("title")) or "",
            season_id=str(season_id) if season_id else None,
            season_title=_optional_str(item.get("season_title")),
            is_finished=_coerce_int(item.get("is_finish")) != 0,
            broadcast_index=_optional_str(item.get("pub_index")),
            renewal_time=_optional_str(item.get("renewal_time")),
            new_episode=new_episode,
            evaluate_text=_optional_str(item.get("evaluate")),
            update_status_text=_optional_str(item.get("index_show")),
        )


@dataclass(frozen=True)
class CalendarEvent:
    uid: str
    summary: str
    start: datetime
    end: datetime
    source: str
    description: str = ""
    is_all_day: bool = False
    url: str | None = None
    rrule: str | None = None
    raw_start: str | None = None
    tzid: str | None = None
    dtstamp: str | None = None
    base_uid: str = ""

    def __post_init__(self) -> None:
        if not self.base_uid:
            object.__setattr__(self, "base_uid", self.uid)


@dataclass(frozen=True)
class ExternalCalendar:
    url: str
    ics_text: str


@dataclass(frozen=True)
class FollowListSuccess:
    shows: list[ShowRecord] = field(default_factory=list)
    original_count: int = 0


@dataclass(frozen=True)
class FollowListPrivacyError:
    message: str
    code: int = PRIVACY_ERROR_CODE


@dataclass(frozen=True)
class FollowListApiError:
    code: int | None
    message: str


FollowListResult = Union[FollowListSuccess, FollowListPrivacyError, FollowListApiError]


def is_currently_airing(record: ShowRecord) -> bool:
    if record.is_finished:
        return False
    pub_time = record.new_episode.pub_time if record.new_episode else None
    return any(_has_text(value) for value in (record.broadcast_index, record.renewal_time, pub_time))


def coerce_show_records(records: object) -> list[ShowRecord]:
    if not isinstance(records, (list, tuple)):
        raise TypeError(f"show records must be a list, got {type(records).__name__}")
    result: list[ShowRecord] = []
    for item in records:
        if isinstance(item, ShowRecord):
            result.append(item)
        elif isinstance(item, Mapping):
            result.append(ShowRecord.from_api(item))
        # anything else is not a usable show and is skipped
    return result


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _coerce_int(value: object) -> int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None
