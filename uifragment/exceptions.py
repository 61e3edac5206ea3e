# uifragment/exceptions.py
"""
@file exceptions.py
@brief Exception classes and structured failure reports for fragment operations.
"""

from __future__ import annotations

import traceback
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class UIFragmentError(Exception):
    """Base exception for the framework."""

    def failure_report(self) -> FailureReport:
        """
        Build a structured snapshot of this failure for test reports.

        @return FailureReport populated from whatever the error carries
        """
        last_error = getattr(self, "original_exception", None)
        return FailureReport(
            description=getattr(self, "description", None) or str(self),
            kind=type(self).__name__,
            elapsed=getattr(self, "elapsed_time", None),
            timeout=getattr(self, "timeout", None),
            attempts=getattr(self, "attempt_count", None),
            last_observation=_observation_str(getattr(self, "last_observation", None)),
            last_error=f"{type(last_error).__name__}: {last_error}" if last_error is not None else None,
            artifacts=dict(getattr(self, "artifacts", None) or {}),
            action_trace=getattr(self, "action_trace", None),
        )


class ConfigError(UIFragmentError):
    """Raised when YAML configuration or a fragment map is invalid."""
    pass


class InvalidCriteriaError(UIFragmentError):
    """
    Raised for programmer errors in search criteria.

    Covers unsupported matcher or index types at construction, and blank
    or malformed selectors and negative or out-of-range indexes at
    resolution time. Never retried.
    """
    pass


class _ElementStateError(UIFragmentError):
    """An element was found but is in the wrong state for the call."""

    problem = "is unusable"

    def __init__(self, target: str = "element", message: Optional[str] = None):
        self.target = target
        text = f"Element '{target}' {self.problem}"
        super().__init__(f"{text}: {message}" if message else text)
        self.description: Optional[str] = None
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None
        self.original_exception: Optional[BaseException] = None
        self.artifacts: Dict[str, str] = {}
        self.action_trace: Optional[str] = None


class StaleElementError(_ElementStateError):
    """Raised when an element handle no longer refers to a node in the document."""
    problem = "is stale (detached from the document)"


class NotInteractableError(_ElementStateError):
    """Raised when an element exists but cannot receive the requested action."""
    problem = "is not interactable"


class DriverConnectionError(UIFragmentError):
    """Raised when the driver fails transiently while talking to the browser."""
    pass


class SessionLostError(UIFragmentError):
    """Raised when the browser session or window is gone; never retried."""
    pass


class PollCancelledError(UIFragmentError):
    """Raised when a poll loop is aborted through its cancellation signal."""

    def __init__(self, description: str, elapsed: float, attempt_count: int):
        self.description = description
        self.elapsed_time = elapsed
        self.attempt_count = attempt_count
        super().__init__(
            f"Cancelled while waiting for {description} "
            f"after {elapsed:.2f}s ({attempt_count} attempts)"
        )


class CheckNotSatisfied(Exception):
    """
    Raised by a poll attempt whose condition does not hold yet.

    Not a UIFragmentError: it only passes between an attempt and the poller
    and never reaches callers.

    Attributes:
        observation: What the attempt actually saw (count, text, ...)
    """

    def __init__(self, observation: Any = None, message: Optional[str] = None):
        self.observation = observation
        super().__init__(message or f"observed {observation!r}")


class TimeoutError(UIFragmentError):
    """
    Raised when a poll runs out of time.

    Attributes:
        original_exception: The last exception raised by an attempt
        last_observation: The last value reported by a failing check
        description: What was being waited for
        timeout: The timeout in seconds
        attempt_count: Number of attempts made
        elapsed_time: Seconds actually spent
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.original_exception: Optional[BaseException] = None
        self.last_observation: Any = None
        self.description: Optional[str] = None
        self.timeout: Optional[float] = None
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None
        self.stage: Optional[str] = None
        self.artifacts: Dict[str, str] = {}
        self.action_trace: Optional[str] = None

    def __str__(self) -> str:
        last = self.original_exception
        notes = [
            note for note, present in (
                (f"Original exception: {type(last).__name__}", last is not None),
                (f"Attempts: {self.attempt_count}", self.attempt_count is not None),
                (f"Elapsed: {self.elapsed_time or 0:.2f}s", self.elapsed_time is not None),
                (f"Stage: {self.stage}", self.stage is not None),
                (f"Artifacts: {self.artifacts}", bool(self.artifacts)),
            ) if present
        ]
        message = super().__str__()
        return f"{message} [{', '.join(notes)}]" if notes else message

    def get_root_cause(self) -> Optional[BaseException]:
        """Follow ``original_exception`` links down to the innermost error."""
        cause = self.original_exception
        while getattr(cause, "original_exception", None) is not None:
            cause = cause.original_exception
        return cause

    def get_traceback_str(self) -> str:
        """Formatted traceback of ``original_exception``; empty when there is none."""
        cause = self.original_exception
        if cause is None:
            return ""
        return "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))


class NotFoundError(TimeoutError):
    """Expected presence, timed out with zero matches."""
    pass


class StillPresentError(TimeoutError):
    """Expected absence, timed out with at least one match."""
    pass


class _ExpectationMismatch(TimeoutError):
    def __init__(self, message: str, expected: Any = None):
        super().__init__(message)
        self.expected = expected

    @property
    def observed(self) -> Any:
        return self.last_observation


class CountMismatchError(_ExpectationMismatch):
    """Expected an exact or ranged count, timed out with a different one."""
    pass


class ValueMismatchError(_ExpectationMismatch):
    """Expected a text/attribute value, timed out without it ever matching."""
    pass


class ActionError(UIFragmentError):
    """
    Raised when an action keeps failing after its retry budget.

    ``cause`` is the last underlying failure; it is also exposed as
    ``original_exception`` so failure reports treat actions and polls alike.
    """

    def __init__(
        self,
        action: str,
        fragment_name: Optional[str] = None,
        details: Optional[str] = None,
        artifacts: Optional[Dict[str, str]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.action = action
        self.fragment_name = fragment_name
        self.details = details
        self.artifacts = artifacts or {}
        self.cause = cause
        self.original_exception = cause
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None
        self.action_trace: Optional[str] = None
        self.description = action if not fragment_name else f"{action} on '{fragment_name}'"
        super().__init__(str(self))

    def __str__(self) -> str:
        fields = [("action", self.action), ("fragment", self.fragment_name), ("details", self.details)]
        if self.cause is not None:
            fields.append(("cause", f"{type(self.cause).__name__}: {self.cause}"))
        text = "ActionError: " + " ".join(f"{key}='{value}'" for key, value in fields if value)
        return f"{text} artifacts={self.artifacts}" if self.artifacts else text


@dataclass
class FailureReport:
    """Structured failure details a test-framework integration can attach to its report."""
    description: str
    kind: str
    elapsed: Optional[float] = None
    timeout: Optional[float] = None
    attempts: Optional[int] = None
    last_observation: Optional[str] = None
    last_error: Optional[str] = None
    artifacts: Dict[str, str] = field(default_factory=dict)
    action_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def format(self) -> str:
        lines: List[str] = [f"{self.kind}: {self.description}"]
        if self.elapsed is not None:
            waited = f"{self.elapsed:.2f}s"
            if self.timeout is not None:
                waited += f" of {self.timeout}s"
            lines.append(f"Waited: {waited}")
        if self.attempts is not None:
            lines.append(f"Attempts: {self.attempts}")
        if self.last_observation is not None:
            lines.append(f"Last observation: {self.last_observation}")
        if self.last_error:
            lines.append(f"Last error: {self.last_error}")
        if self.artifacts:
            lines.append(f"Artifacts: {self.artifacts}")
        if self.action_trace:
            lines.append(self.action_trace)
        return "\n".join(lines)


def _observation_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return repr(value)
