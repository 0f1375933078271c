from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

T = TypeVar("T")


def _on_retry(retry_state):
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason}. Retrying in {wait:.0f}s (attempt {attempt})...")


def default_retry_kwargs(exception_types: tuple[type[Exception], ...], max_attempts: int) -> dict:
    return {
        "retry": retry_if_exception_type(exception_types),
        "wait": wait_exponential(multiplier=2, min=2, max=30),
        "stop": stop_after_attempt(max(1, max_attempts)),
        "before_sleep": _on_retry,
        "reraise": True,
    }


async def open_with_retry(
    open_request: Callable[[], Awaitable[T]],
    exception_types: tuple[type[Exception], ...],
    max_attempts: int,
) -> T:
    """Issue a request, retrying transient failures only while nothing has been received yet."""
    async for attempt in AsyncRetrying(**default_retry_kwargs(exception_types, max_attempts)):
        with attempt:
            return await open_request()
    raise AssertionError("unreachable")
