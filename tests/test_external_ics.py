from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from bili_calendar.core.models import ExternalCalendar
from bili_calendar.infra.external_ics import fetch_external_calendars, validate_source_urls


def _ics(summary: str) -> str:
    return (
        "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nBEGIN:VEVENT\r\n"
        f"SUMMARY:{summary}\r\nDTSTART:20250106T020000Z\r\nEND:VEVENT\r\nEND:VCALENDAR\r\n"
    )


def _fetch(urls: list[str], handler, *, timeout_seconds: float = 8.0) -> list[ExternalCalendar]:
    return asyncio.run(
        fetch_external_calendars(urls, timeout_seconds=timeout_seconds, transport=httpx.MockTransport(handler))
    )


def test_results_follow_input_order() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=_ics(request.url.host))

    urls = ["https://b.example.com/cal.ics", "https://a.example.com/cal.ics"]
    calendars = _fetch(urls, handler)

    assert [calendar.url for calendar in calendars] == urls
    assert "SUMMARY:b.example.com" in calendars[0].ics_text


def test_failed_sources_are_left_out(caplog) -> None:
    caplog.set_level(logging.WARNING)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "missing.example.com":
            return httpx.Response(404)
        if request.url.host == "down.example.com":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.host == "html.example.com":
            return httpx.Response(200, text="<html></html>")
        return httpx.Response(200, text=_ics("ok"))

    urls = [
        "https://missing.example.com/a.ics",
        "https://down.example.com/a.ics",
        "https://html.example.com/a.ics",
        "https://good.example.com/a.ics",
    ]
    calendars = _fetch(urls, handler)

    assert [calendar.url for calendar in calendars] == ["https://good.example.com/a.ics"]
    assert "status=404" in caplog.text
    assert "ConnectError" in caplog.text
    assert "not a calendar" in caplog.text


def test_slow_source_times_out(caplog) -> None:
    caplog.set_level(logging.WARNING)

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "slow.example.com":
            await asyncio.sleep(1)
        return httpx.Response(200, text=_ics("fast"))

    urls = ["https://slow.example.com/a.ics", "https://fast.example.com/a.ics"]
    calendars = _fetch(urls, handler, timeout_seconds=0.05)

    assert [calendar.url for calendar in calendars] == ["https://fast.example.com/a.ics"]
    assert "timed out" in caplog.text


def test_no_urls_means_no_requests() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("unexpected request")

    assert _fetch([], handler) == []


def test_too_many_sources_rejected() -> None:
    with pytest.raises(ValueError):
        validate_source_urls([f"https://example.com/{index}.ics" for index in range(6)])


@pytest.mark.parametrize("url", ["ftp://example.com/a.ics", "http://127.0.0.1/a.ics", ""])
def test_invalid_source_rejected(url: str) -> None:
    with pytest.raises(ValueError):
        validate_source_urls([url])


def test_five_sources_are_allowed() -> None:
    urls = [f"https://example.com/{index}.ics" for index in range(5)]
    assert validate_source_urls(urls) == urls


def test_redirect_to_private_host_is_refused(caplog) -> None:
    caplog.set_level(logging.WARNING)
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.host)
        if request.url.host == "public.example.com":
            return httpx.Response(302, headers={"Location": "http://127.0.0.1/x.ics"})
        return httpx.Response(200, text=_ics("internal"))

    calendars = _fetch(["https://public.example.com/a.ics"], handler)

    assert calendars == []
    assert requested == ["public.example.com"]
    assert "redirect refused" in caplog.text


def test_redirect_to_public_host_is_followed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "old.example.com":
            return httpx.Response(301, headers={"Location": "https://new.example.com/a.ics"})
        return httpx.Response(200, text=_ics("moved"))

    [calendar] = _fetch(["https://old.example.com/a.ics"], handler)

    assert calendar.url == "https://old.example.com/a.ics"
    assert "SUMMARY:moved" in calendar.ics_text


def test_redirect_loop_is_cut_off(caplog) -> None:
    caplog.set_level(logging.WARNING)
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(302, headers={"Location": f"/hop{len(requested)}.ics"})

    assert _fetch(["https://loop.example.com/a.ics"], handler) == []
    assert len(requested) == 4
    assert "TooManyRedirects" in caplog.text
