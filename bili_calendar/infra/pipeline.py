from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

import httpx

from bili_calendar.core.calendar_builder import build_empty_calendar, generate_ics
from bili_calendar.core.merge import generate_merged_ics
from bili_calendar.core.models import FollowListApiError, FollowListPrivacyError, FollowListSuccess
from bili_calendar.infra.bilibili import BilibiliClient
from bili_calendar.infra.config import Settings
from bili_calendar.infra.external_ics import fetch_external_calendars, validate_source_urls
from bili_calendar.infra.validation import validate_uid

LOGGER = logging.getLogger(__name__)

ICS_CONTENT_TYPE = "text/calendar; charset=utf-8"


@dataclass(frozen=True)
class CalendarResponse:
    body: str
    filename: str
    content_type: str = ICS_CONTENT_TYPE
    empty: bool = False


class UpstreamError(RuntimeError):
    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class CalendarService:
    def __init__(
        self,
        settings: Settings,
        *,
        client: BilibiliClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or BilibiliClient(settings, transport=transport)
        self._transport = transport

    async def single_calendar(self, uid: str, *, now: datetime | None = None) -> CalendarResponse:
        clean_uid = _require_uid(uid)
        result = await self._client.fetch_follow_list(clean_uid)
        if isinstance(result, FollowListPrivacyError):
            return _empty_response(clean_uid, "用户设置为隐私", now=now)
        shows = _require_success(result).shows
        return CalendarResponse(
            body=generate_ics(shows, clean_uid, now=now),
            filename=f"bili_bangumi_{clean_uid}.ics",
        )

    async def merged_calendar(
        self,
        uid: str,
        source_urls: Sequence[str],
        *,
        now: datetime | None = None,
    ) -> CalendarResponse:
        clean_uid = _require_uid(uid)
        urls = validate_source_urls(list(source_urls))
        LOGGER.info("Merging calendar: uid=%s sources=%s", clean_uid, len(urls))
        result = await self._client.fetch_follow_list(clean_uid)
        if isinstance(result, FollowListPrivacyError):
            return _empty_response(clean_uid, "用户设置为隐私", now=now)
        shows = _require_success(result).shows
        externals = await fetch_external_calendars(
            urls,
            timeout_seconds=self._settings.external_ics_timeout_seconds,
            transport=self._transport,
        )
        merged = generate_merged_ics(shows, clean_uid, externals, now=now)
        if merged is None:
            return _empty_response(clean_uid, "未找到可用日程", now=now)
        return CalendarResponse(body=merged, filename=f"bili_merge_{clean_uid}.ics")


def _require_uid(uid: str) -> str:
    result = validate_uid(uid)
    if not result.valid or result.value is None:
        raise ValueError(result.error or "invalid uid")
    return result.value


def _require_success(result: FollowListSuccess | FollowListApiError) -> FollowListSuccess:
    if isinstance(result, FollowListApiError):
        raise UpstreamError(result.message, result.code)
    return result


def _empty_response(uid: str, reason: str, *, now: datetime | None) -> CalendarResponse:
    return CalendarResponse(
        body=build_empty_calendar(uid, reason, now=now),
        filename=f"bili_bangumi_{uid}_empty.ics",
        empty=True,
    )
