from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx

from bili_calendar.infra.config import Settings

T = TypeVar("T")

TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_ms: int = 300
    max_delay_ms: int = 5000
    jitter_ms: int = 0


class RetryableStatusError(RuntimeError):
    """Raised for a 429/5xx response so the retry loop can try again."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"http_status:{response.status_code}")
        self.response = response
        self.status_code = response.status_code


def load_retry_policy(settings: Settings) -> RetryPolicy:
    # HTTP_RETRY_MAX counts retries, the policy counts attempts
    return RetryPolicy(
        max_attempts=settings.http_retry_max + 1,
        base_delay_ms=settings.http_retry_base_delay_ms,
    )


def backoff_delay_ms(policy: RetryPolicy, attempt: int) -> int:
    """Delay after failed ``attempt`` (1-based): base, 2x base, 4x base, ... capped."""
    delay = policy.base_delay_ms * (2 ** max(attempt - 1, 0))
    if policy.jitter_ms > 0:
        delay += int(random.random() * policy.jitter_ms)
    return min(policy.max_delay_ms, delay)


def is_retryable_status(status_code: int) -> bool:
    return status_code == TOO_MANY_REQUESTS or 500 <= status_code < 600


def raise_for_retryable(response: httpx.Response) -> httpx.Response:
    if is_retryable_status(response.status_code):
        raise RetryableStatusError(response)
    return response


def is_retryable_error(exc: Exception) -> bool:
    return isinstance(exc, RetryableStatusError)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    logger: logging.Logger,
    name: str,
    is_retryable: Callable[[Exception], bool],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    attempts = max(1, policy.max_attempts)
    attempt = 1
    while True:
        try:
            return await func()
        except Exception as exc:
            if attempt >= attempts or not is_retryable(exc):
                raise
            wait_ms = backoff_delay_ms(policy, attempt)
            logger.warning(
                "retry.attempt name=%s attempt=%s/%s wait_ms=%s error=%s",
                name,
                attempt + 1,
                attempts,
                wait_ms,
                exc,
            )
            await sleep(wait_ms / 1000)
            attempt += 1
