from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

LOGGER = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
DEFAULT_REFERER = "https://www.bilibili.com/"


@dataclass(frozen=True)
class Settings:
    http_timeout_seconds: float
    http_retry_max: int
    http_retry_base_delay_ms: int
    user_agent: str
    referer: str
    bilibili_cookie: str
    external_ics_timeout_seconds: float


def load_settings(raw_env: Mapping[str, str] | None = None) -> Settings:
    if raw_env is None:
        _load_dotenv()
    env = raw_env if raw_env is not None else os.environ

    http_timeout_ms = _parse_int_clamped(env.get("HTTP_TIMEOUT_MS"), 10000, 1000, 60000)
    http_retry_max = _parse_int_clamped(env.get("HTTP_RETRY_MAX"), 2, 0, 5)
    http_retry_base_delay_ms = _parse_int_clamped(env.get("HTTP_RETRY_BASE_DELAY_MS"), 300, 50, 5000)
    external_timeout_ms = _parse_int_clamped(env.get("EXTERNAL_ICS_TIMEOUT_MS"), 8000, 1000, 60000)
    return Settings(
        http_timeout_seconds=http_timeout_ms / 1000,
        http_retry_max=http_retry_max,
        http_retry_base_delay_ms=http_retry_base_delay_ms,
        user_agent=env.get("HTTP_UA") or DEFAULT_USER_AGENT,
        referer=env.get("HTTP_REFERER") or DEFAULT_REFERER,
        bilibili_cookie=env.get("BILIBILI_COOKIE", ""),
        external_ics_timeout_seconds=external_timeout_ms / 1000,
    )


def _load_dotenv() -> None:
    try:
        from dotenv import load_dotenv
    except ImportError:
        LOGGER.debug("python-dotenv is not installed; skipping .env loading")
        return
    load_dotenv()


def _parse_int_clamped(value: str | None, default: int, minimum: int, maximum: int) -> int:
    if value is None:
        return default
    trimmed = value.strip()
    if not trimmed:
        return default
    try:
        parsed = int(trimmed)
    except ValueError:
        LOGGER.warning("Ignoring non-integer config value %r", value)
        return default
    return max(minimum, min(parsed, maximum))
