from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

from bili_calendar.core.models import ExternalCalendar
from bili_calendar.infra.validation import validate_source_url

LOGGER = logging.getLogger(__name__)

MAX_EXTERNAL_SOURCES = 5
DEFAULT_TIMEOUT_SECONDS = 8.0
MAX_REDIRECTS = 3


def validate_source_urls(urls: Sequence[str]) -> list[str]:
    if len(urls) > MAX_EXTERNAL_SOURCES:
        raise ValueError(f"最多支持 {MAX_EXTERNAL_SOURCES} 个外部 ICS 链接")
    cleaned: list[str] = []
    for url in urls:
        result = validate_source_url(url)
        if not result.valid or result.value is None:
            raise ValueError(f"invalid source url {url!r}: {result.error}")
        cleaned.append(result.value)
    return cleaned


async def fetch_external_calendars(
    urls: Sequence[str],
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ExternalCalendar]:
    """Fetch every source concurrently; failed sources are logged and left out."""
    cleaned = validate_source_urls(urls)
    if not cleaned:
        return []
    async with httpx.AsyncClient(
        timeout=timeout_seconds,
        follow_redirects=False,
        transport=transport,
    ) as client:
        results = await asyncio.gather(*(_fetch_one(client, url, timeout_seconds) for url in cleaned))
    calendars = [item for item in results if item is not None]
    LOGGER.info("External ICS fetched: requested=%s ok=%s", len(cleaned), len(calendars))
    return calendars


async def _fetch_one(client: httpx.AsyncClient, url: str, timeout_seconds: float) -> ExternalCalendar | None:
    try:
        response = await asyncio.wait_for(_get_checked(client, url), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        LOGGER.warning("External ICS fetch timed out: url=%s timeout=%.1fs", url, timeout_seconds)
        return None
    except httpx.HTTPError as exc:
        LOGGER.warning("External ICS fetch failed: url=%s error=%s", url, exc.__class__.__name__)
        return None
    if response is None:
        return None
    if response.status_code // 100 != 2:
        LOGGER.warning("External ICS fetch failed: url=%s status=%s", url, response.status_code)
        return None
    try:
        text = response.content.decode(response.encoding or "utf-8")
    except (LookupError, UnicodeDecodeError):
        LOGGER.warning("External ICS response is not text: url=%s", url)
        return None
    if "BEGIN:VCALENDAR" not in text:
        LOGGER.warning("External ICS response is not a calendar: url=%s", url)
        return None
    return ExternalCalendar(url=url, ics_text=text)


async def _get_checked(client: httpx.AsyncClient, url: str) -> httpx.Response | None:
    """GET ``url``, following redirects only to targets that pass source validation."""
    response = await client.get(url)
    for _ in range(MAX_REDIRECTS):
        if not response.is_redirect:
            return response
        target = str(response.url.join(response.headers["Location"]))
        checked = validate_source_url(target)
        if not checked.valid or checked.value is None:
            LOGGER.warning("External ICS redirect refused: url=%s location=%s error=%s", url, target, checked.error)
            return None
        response = await client.get(checked.value)
    if response.is_redirect:
        raise httpx.TooManyRedirects(f"more than {MAX_REDIRECTS} redirects", request=response.request)
    return response
