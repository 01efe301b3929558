from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from bili_calendar.core.models import (
    PRIVACY_ERROR_CODE,
    FollowListApiError,
    FollowListPrivacyError,
    FollowListResult,
    FollowListSuccess,
    ShowRecord,
    is_currently_airing,
)
from bili_calendar.infra.config import Settings
from bili_calendar.infra.resilience import (
    RetryableStatusError,
    is_retryable_error,
    load_retry_policy,
    raise_for_retryable,
    retry_async,
)

LOGGER = logging.getLogger(__name__)

FOLLOW_LIST_URL = "https://api.bilibili.com/x/space/bangumi/follow/list"
PAGE_SIZE = 30


class BilibiliClient:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._sleep = sleep
        self._retry_policy = load_retry_policy(settings)

    def _headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": self._settings.user_agent,
            "Referer": self._settings.referer,
        }
        if self._settings.bilibili_cookie:
            headers["Cookie"] = self._settings.bilibili_cookie
        return headers

    async def fetch_follow_list(self, uid: str) -> FollowListResult:
        params = {"type": 1, "follow_status": 0, "vmid": uid, "pn": 1, "ps": PAGE_SIZE}
        LOGGER.info("Fetching follow list: uid=%s", uid)
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds,
                headers=self._headers(),
                transport=self._transport,
            ) as client:

                async def _call() -> httpx.Response:
                    response = await client.get(FOLLOW_LIST_URL, params=params)
                    return raise_for_retryable(response)

                response = await retry_async(
                    _call,
                    policy=self._retry_policy,
                    logger=LOGGER,
                    name="bilibili.follow_list",
                    is_retryable=is_retryable_error,
                    sleep=self._sleep,
                )
        except RetryableStatusError as exc:
            LOGGER.warning("Follow list request failed: uid=%s status=%s", uid, exc.status_code)
            return FollowListApiError(code=None, message=f"B站API返回错误: {exc.status_code}")
        except httpx.HTTPError as exc:
            LOGGER.warning("Follow list request failed: uid=%s error=%s", uid, exc.__class__.__name__)
            return FollowListApiError(code=None, message=f"请求B站API失败: {exc.__class__.__name__}")

        if response.status_code // 100 != 2:
            LOGGER.warning("Follow list request failed: uid=%s status=%s", uid, response.status_code)
            return FollowListApiError(code=None, message=f"B站API返回错误: {response.status_code}")
        try:
            payload = response.json()
        except ValueError:
            LOGGER.warning("Follow list response is not JSON: uid=%s", uid)
            return FollowListApiError(code=None, message="B站API返回了无法解析的数据")
        return decode_follow_list(payload, uid=uid)


def decode_follow_list(payload: Any, *, uid: str = "") -> FollowListResult:
    if not isinstance(payload, dict):
        return FollowListApiError(code=None, message="B站API返回了无法解析的数据")
    code = payload.get("code")
    if code != 0:
        message = str(payload.get("message") or "")
        LOGGER.warning("Bilibili API business error: uid=%s code=%s message=%s", uid, code, message)
        if code == PRIVACY_ERROR_CODE:
            return FollowListPrivacyError(message="该用户的追番列表已设为隐私，无法获取")
        return FollowListApiError(code=code if isinstance(code, int) else None, message=message)
    data = payload.get("data")
    items = data.get("list") if isinstance(data, dict) else None
    if not isinstance(items, list):
        items = []
    records = [ShowRecord.from_api(item) for item in items if isinstance(item, dict)]
    airing = [record for record in records if is_currently_airing(record)]
    LOGGER.info("Follow list filtered: uid=%s total=%s airing=%s", uid, len(records), len(airing))
    return FollowListSuccess(shows=airing, original_count=len(records))
