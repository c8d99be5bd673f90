"""
Retry Orchestration

Wraps provider calls in bounded exponential backoff (``tenacity``).

- ``max_retries + 1`` attempts in total
- Delay after failed attempt ``n`` (0-based) is
  ``min(base_delay * backoff_factor ** n, max_delay)``
- No delay after the final attempt
- Cancellation is checked before every attempt and while waiting
- Name-conflict failures rewrite the request (``on_conflict``) before the
  next attempt; all other failures retry the request unchanged
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import settings
from .client import is_name_conflict
from .models import AddContextRequest

logger = logging.getLogger("arch_search.context.retry")

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")

_RETRY_SUFFIX = re.compile(r"-retry\d+-\d+$")


class RetryExhaustedError(RuntimeError):
    """Raised when every attempt of an operation failed."""

    def __init__(self, retries: int, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"operation failed after {retries} retries: {last_error}")
        self.retries = retries
        self.attempts = attempts
        self.last_error = last_error


class RetryCancelledError(RuntimeError):
    """Raised when the cancel event fires before the operation succeeded."""


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 4
    base_delay: float = 2.0
    backoff_factor: float = 1.5
    max_delay: float = 15.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.retry_max_retries,
            base_delay=settings.retry_base_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
        )

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * self.backoff_factor ** attempt, self.max_delay)


@dataclass
class RetryState:
    """Progress of one retried operation."""

    attempt: int = 0
    delay: float = 0.0
    last_error: Optional[BaseException] = None


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise RetryCancelledError("operation cancelled")


async def _wait(delay: float, cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    raise RetryCancelledError("operation cancelled while waiting to retry")


async def retry_async(
    operation: Callable[[RequestT], Awaitable[ResultT]],
    request: RequestT,
    policy: Optional[RetryPolicy] = None,
    *,
    on_conflict: Optional[Callable[[RequestT, int], RequestT]] = None,
    is_conflict: Callable[[BaseException], bool] = is_name_conflict,
    cancel_event: Optional[asyncio.Event] = None,
    description: str = "operation",
) -> ResultT:
    """
    Run ``operation(request)`` until it succeeds or the policy is exhausted.

    Parameters
    ----------
    operation : Callable
        Async callable taking the (possibly rewritten) request.

    request
        Initial request passed to ``operation``.

    policy : Optional[RetryPolicy]
        Backoff policy; defaults to the configured one.

    on_conflict : Optional[Callable]
        Called as ``on_conflict(request, attempt_number)`` after a failure
        that ``is_conflict`` recognises; its return value is used for the
        next attempt.

    cancel_event : Optional[asyncio.Event]
        Setting this event aborts the operation with ``RetryCancelledError``.

    Raises
    ------
    RetryExhaustedError
        After ``policy.max_retries + 1`` failed attempts.
    RetryCancelledError
        If ``cancel_event`` is set.
    """
    policy = policy or RetryPolicy.from_settings()
    state = RetryState()

    def _before_sleep(retry_state: RetryCallState) -> None:
        state.attempt = retry_state.attempt_number
        state.delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        state.last_error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retrying %s (attempt %d, delay %.2fs): %s",
            description,
            state.attempt,
            state.delay,
            state.last_error,
        )

    async def _sleep(delay: float) -> None:
        await _wait(delay, cancel_event)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait_exponential(
            multiplier=policy.base_delay,
            exp_base=policy.backoff_factor,
            min=0,
            max=policy.max_delay,
        ),
        retry=retry_if_not_exception_type(RetryCancelledError),
        before_sleep=_before_sleep,
        sleep=_sleep,
    )

    try:
        async for attempt in retrying:
            with attempt:
                _check_cancelled(cancel_event)
                try:
                    return await operation(request)
                except Exception as exc:
                    if on_conflict is not None and is_conflict(exc):
                        number = attempt.retry_state.attempt_number
                        logger.warning("Name conflict on attempt %d of %s: %s", number, description, exc)
                        request = on_conflict(request, number)
                    raise
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        raise RetryExhaustedError(
            retries=policy.max_retries,
            attempts=exc.last_attempt.attempt_number,
            last_error=last_error,
        ) from last_error


def rename_on_conflict(request: AddContextRequest, attempt: int) -> AddContextRequest:
    """
    Give every document a fresh name: ``<stem>-retry<k>-<HHMMSSffffff>.txt``.

    A suffix added by an earlier rename is replaced rather than stacked.
    """
    if not request.documents:
        return request

    stamp = datetime.now().strftime("%H%M%S%f")
    renamed = []
    for document in request.documents:
        original = document.file_name or "document.txt"
        stem = original[:-4] if original.endswith(".txt") else original
        stem = _RETRY_SUFFIX.sub("", stem)
        new_name = f"{stem}-retry{attempt}-{stamp}.txt"
        logger.debug("Renamed document %s -> %s", original, new_name)
        renamed.append(document.model_copy(update={"file_name": new_name}))

    return request.model_copy(update={"documents": renamed})
