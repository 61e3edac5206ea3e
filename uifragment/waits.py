# uifragment/waits.py
"""
@file waits.py
@brief Polling and bounded-retry primitives with explicit failure classification.

Every attempt either returns (success), or raises. The raised condition is
classified once, here, into the Condition enum: NOT_YET, STALE and TRANSIENT
are retried; anything else is FATAL and propagates unchanged on first sight.
"""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Any, Callable, FrozenSet, Optional, TypeVar

from .exceptions import (ActionError, CheckNotSatisfied, DriverConnectionError,
                         NotInteractableError, PollCancelledError,
                         StaleElementError, TimeoutError)
from .timinglogger import TIMING_LOGGER

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0
DEFAULT_INTERVAL = 0.1


class Condition(str, Enum):
    """Outcome of a single attempt."""
    SATISFIED = "satisfied"
    NOT_YET = "not_yet"
    STALE = "stale"
    TRANSIENT = "transient"
    FATAL = "fatal"


RETRYABLE: FrozenSet[Condition] = frozenset({Condition.NOT_YET, Condition.STALE, Condition.TRANSIENT})
ACTION_RETRYABLE: FrozenSet[Condition] = frozenset({Condition.STALE, Condition.TRANSIENT})


def classify(exc: Optional[BaseException]) -> Condition:
    """Map an attempt's exception (or None for a clean return) to a Condition."""
    if exc is None:
        return Condition.SATISFIED
    if isinstance(exc, CheckNotSatisfied):
        return Condition.NOT_YET
    if isinstance(exc, StaleElementError):
        return Condition.STALE
    if isinstance(exc, (NotInteractableError, DriverConnectionError)):
        return Condition.TRANSIENT
    return Condition.FATAL


def _now() -> float:
    """Monotonic time source for deterministic timeout calculations."""
    return time.monotonic()


def _pause(delay: float, cancel: Optional[threading.Event]) -> bool:
    """Sleep for delay seconds; return True if cancelled meanwhile."""
    if delay <= 0:
        return cancel is not None and cancel.is_set()
    if cancel is None:
        time.sleep(delay)
        return False
    return cancel.wait(delay)


def _log_retry_attempt(description: str, attempt: int, stage: Optional[str]) -> None:
    """Emit sampled retry attempt events to action logger if enabled."""
    from .actionlogger import ACTION_LOGGER

    if not ACTION_LOGGER.is_enabled():
        return
    if not ACTION_LOGGER.should_log_retry_attempt(attempt):
        return

    ACTION_LOGGER.log(
        action="retry_attempt",
        status="info",
        metadata={"description": description},
        attempt=attempt,
        phase=stage or "execute",
        event="retry_attempt",
    )


def _cancelled(description: str, start: float, attempts: int, stage: Optional[str]) -> PollCancelledError:
    elapsed = _now() - start
    TIMING_LOGGER.log(
        event="poll_cancelled",
        description=description,
        status="warning",
        metadata={"attempts": attempts, "elapsed_s": round(elapsed, 3), "stage": stage},
    )
    return PollCancelledError(description, elapsed, attempts)


def poll(
    attempt: Callable[[], T],
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
    description: str = "condition",
    *,
    backoff: float = 1.0,
    max_interval: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    error_factory: Callable[[str], TimeoutError] = TimeoutError,
    retry_on: FrozenSet[Condition] = RETRYABLE,
    stage: Optional[str] = None,
) -> T:
    """
    Run attempt() until it returns, a fatal condition is raised, or the deadline passes.

    @param attempt Zero-argument callable doing one resolve+check; raises
                   CheckNotSatisfied (or a stale/transient error) to ask for another try
    @param timeout Overall budget in seconds, fixed at entry; at least one attempt is made
    @param interval Initial delay between attempts
    @param description What is being waited for, used in the timeout message
    @param backoff Multiplier applied to the delay after each failed attempt
    @param max_interval Upper bound for the delay when backoff > 1
    @param cancel Event that aborts the loop with PollCancelledError when set
    @param error_factory Builds the TimeoutError (or subclass) raised on timeout
    @return Whatever the successful attempt returned
    """
    start_time = _now()
    deadline = start_time + max(timeout, 0.0)
    delay = interval
    attempt_count = 0
    last_error: Optional[BaseException] = None
    last_observation: Any = None
    observed = False

    TIMING_LOGGER.log(
        event="poll_start",
        description=description,
        metadata={"timeout_s": timeout, "interval_s": interval, "stage": stage},
    )

    while True:
        if cancel is not None and cancel.is_set():
            raise _cancelled(description, start_time, attempt_count, stage)

        attempt_count += 1
        _log_retry_attempt(description, attempt_count, stage)
        try:
            result = attempt()
        except Exception as e:
            condition = classify(e)
            if condition not in retry_on:
                raise
            if condition is Condition.NOT_YET:
                last_observation = e.observation
                observed = True
            else:
                last_error = e
        else:
            TIMING_LOGGER.log(
                event="poll_success",
                description=description,
                status="success",
                metadata={
                    "attempts": attempt_count,
                    "elapsed_s": round(_now() - start_time, 3),
                    "stage": stage,
                },
            )
            return result

        time_left = deadline - _now()
        if time_left <= 0:
            break

        if _pause(min(delay, time_left), cancel):
            raise _cancelled(description, start_time, attempt_count, stage)
        if backoff > 1.0:
            delay = delay * backoff
            if max_interval is not None:
                delay = min(delay, max_interval)

    elapsed = _now() - start_time
    TIMING_LOGGER.log(
        event="poll_timeout",
        description=description,
        status="error",
        metadata={
            "timeout_s": timeout,
            "attempts": attempt_count,
            "elapsed_s": round(elapsed, 3),
            "stage": stage,
        },
    )

    message = f"Timed out after {elapsed:.2f}s (timeout {timeout}s) waiting for {description}"
    if observed:
        message += f"; last observed: {last_observation!r}"
    if last_error is not None:
        message += f"; last error: {type(last_error).__name__}: {last_error}"

    error = error_factory(message)
    error.description = description
    error.timeout = timeout
    error.attempt_count = attempt_count
    error.elapsed_time = elapsed
    error.stage = stage
    error.last_observation = last_observation if observed else None
    error.original_exception = last_error
    raise error from last_error


def wait_until(
    predicate: Callable[[], T],
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
    description: str = "condition",
    **kwargs: Any,
) -> T:
    """
    Repeatedly runs predicate until it returns a truthy value, or until timeout.

    Falsy results count as "not yet"; exceptions are classified like poll().
    """
    def attempt() -> T:
        result = predicate()
        if not result:
            raise CheckNotSatisfied(result)
        return result

    return poll(attempt, timeout, interval, description, **kwargs)


def wait_until_not(
    predicate: Callable[[], Any],
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
    description: str = "condition to become false",
    **kwargs: Any,
) -> None:
    """Wait until predicate returns a falsy value."""
    def attempt() -> None:
        result = predicate()
        if result:
            raise CheckNotSatisfied(result)

    poll(attempt, timeout, interval, description, **kwargs)


def retry(
    action: Callable[[], T],
    max_attempts: int = 3,
    interval: float = DEFAULT_INTERVAL,
    description: str = "operation",
    *,
    timeout: Optional[float] = None,
    fragment_name: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
    retry_on: FrozenSet[Condition] = ACTION_RETRYABLE,
    stage: Optional[str] = None,
) -> T:
    """
    Run an action up to max_attempts times, retrying stale/transient failures.

    The action is expected to re-resolve its target itself on each call. With
    a timeout, no further attempt starts once the next one would begin after
    ``timeout`` seconds; the first attempt always runs.
    Exhausting the budget on staleness raises StaleElementError; on any other
    retryable condition raises ActionError. Fatal errors propagate at once.
    """
    start_time = _now()
    deadline = start_time + timeout if timeout is not None else None
    last_exception: Optional[BaseException] = None
    max_attempts = max(1, int(max_attempts))
    attempts_made = 0

    TIMING_LOGGER.log(
        event="retry_start",
        description=description,
        metadata={"max_attempts": max_attempts, "interval_s": interval, "timeout_s": timeout, "stage": stage},
    )

    for attempt in range(1, max_attempts + 1):
        if cancel is not None and cancel.is_set():
            raise _cancelled(description, start_time, attempt - 1, stage)
        _log_retry_attempt(description, attempt, stage)
        attempts_made = attempt
        try:
            result = action()
        except Exception as e:
            if classify(e) not in retry_on:
                raise
            last_exception = e
            out_of_time = deadline is not None and _now() + interval >= deadline
            if attempt == max_attempts or out_of_time:
                break
            TIMING_LOGGER.log(
                event="retry_wait",
                description=description,
                metadata={
                    "attempt": attempt,
                    "sleep_s": round(interval, 3),
                    "error": type(e).__name__,
                    "stage": stage,
                },
            )
            if _pause(interval, cancel):
                raise _cancelled(description, start_time, attempt, stage)
            continue
        TIMING_LOGGER.log(
            event="retry_success",
            description=description,
            status="success",
            metadata={
                "attempts": attempt,
                "elapsed_s": round(_now() - start_time, 3),
                "stage": stage,
            },
        )
        return result

    elapsed = _now() - start_time
    TIMING_LOGGER.log(
        event="retry_exhausted",
        description=description,
        status="error",
        metadata={"attempts": attempts_made, "elapsed_s": round(elapsed, 3), "stage": stage},
    )

    if isinstance(last_exception, StaleElementError):
        error: Exception = StaleElementError(
            fragment_name or "element",
            f"still stale after {attempts_made} attempts at {description}",
        )
    else:
        error = ActionError(
            action=description,
            details=f"failed after {attempts_made} attempts",
            cause=last_exception,
        )
    error.description = description
    error.attempt_count = attempts_made
    error.elapsed_time = elapsed
    error.original_exception = last_exception
    raise error from last_exception
