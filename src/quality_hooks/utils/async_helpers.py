"""Async utility functions for resilient tool invocations.

This module provides:
- The base exception hierarchy shared by analyzers and the engine
- Retry decorators with exponential backoff
- Timeout wrappers for async operations

Analyzer failures are never allowed to escape a validation call; the
exceptions defined here are raised inside analyzers and converted into typed
result objects by the orchestrator.
"""

from __future__ import annotations

import asyncio
import builtins
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


class QualityHooksError(Exception):
    """Base exception for all quality-hooks errors."""


class AnalyzerError(QualityHooksError):
    """An analyzer could not produce a result.

    Attributes:
        analyzer: Name of the analyzer that failed, if known.
    """

    def __init__(self, message: str, analyzer: str | None = None) -> None:
        super().__init__(message)
        self.analyzer = analyzer


class AnalyzerExecutionError(AnalyzerError):
    """The analyzer process could not be spawned or exited abnormally."""


class AnalyzerTimeoutError(AnalyzerError):
    """The analyzer did not finish within its time budget."""


class FixNotSupportedError(AnalyzerError):
    """The analyzer has no write/apply mode."""


class TimeoutError(QualityHooksError):
    """An awaited operation ran past its deadline.

    Shadows the builtin inside this package; :func:`with_timeout` translates
    the builtin into this type.
    """


def _before_sleep(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    if error is None:
        return
    log.warning(
        "retrying_tool_call",
        attempt=state.attempt_number,
        error_type=type(error).__name__,
        error=str(error),
        sleep=state.next_action.sleep if state.next_action else 0,
    )


def create_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_on: tuple[type[Exception], ...] = (TimeoutError,),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Build a tenacity decorator for flaky async tool calls.

    Only exceptions in ``retry_on`` are retried; anything else propagates on
    the first attempt. The last exception is re-raised once ``max_attempts``
    calls (the first one included) have failed. Waits grow exponentially
    between ``min_wait`` and ``max_wait`` seconds.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_before_sleep,
        reraise=True,
    )


async def with_timeout(
    coro: Awaitable[T],
    timeout: float,
    error_message: str | None = None,
) -> T:
    """Await ``coro`` for at most ``timeout`` seconds.

    Raises:
        TimeoutError: Our own subclass of :class:`QualityHooksError`, carrying
            ``error_message`` or a default naming the timeout.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except builtins.TimeoutError as e:
        msg = error_message or f"Operation timed out after {timeout}s"
        log.debug("operation_timeout", timeout=timeout)
        raise TimeoutError(msg) from e
