# uifragment/context.py
"""
@file context.py
@brief Per-thread stack of running fragment operations.

Every tracked operation pushes a frame; a failure deep inside nested calls
(``click`` polling ``verify_present`` polling the driver) can then report the
whole chain it happened in.
"""

from __future__ import annotations

import functools
import inspect
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar
from uuid import uuid4

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class ActionContext:
    """One running operation on one fragment."""

    action_name: str
    fragment_name: Optional[str] = None
    criteria: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    parent: Optional["ActionContext"] = None
    action_id: str = field(default_factory=lambda: uuid4().hex[:8])
    started: float = field(default_factory=time.monotonic)

    @property
    def description(self) -> str:
        text = self.action_name
        if self.fragment_name:
            text += f" on '{self.fragment_name}'"
        if self.criteria and self.criteria != self.fragment_name:
            text += f" ({self.criteria})"
        return text

    @property
    def elapsed_time(self) -> float:
        return time.monotonic() - self.started

    def chain(self) -> Iterator["ActionContext"]:
        """This frame, then each enclosing one outwards."""
        frame: Optional[ActionContext] = self
        while frame is not None:
            yield frame
            frame = frame.parent

    def format_trace(self) -> str:
        """
        Render the chain, innermost first::

            Action trace (most recent first):
              X verify_present on 'submit' [0.51s]
              -> click on 'submit' [0.52s]
        """
        lines = ["Action trace (most recent first):"]
        for depth, frame in enumerate(self.chain()):
            marker = "->" if depth else "X"
            lines.append(f"  {marker} {frame.description} [{frame.elapsed_time:.2f}s]")
        return "\n".join(lines)


class ActionContextManager:
    """Access to the calling thread's operation stack."""

    _frames = threading.local()

    @classmethod
    def current(cls) -> Optional[ActionContext]:
        """Innermost running operation, or None outside any."""
        return getattr(cls._frames, "top", None)

    @classmethod
    @contextmanager
    def action(
        cls,
        action_name: str,
        fragment_name: Optional[str] = None,
        criteria: Optional[str] = None,
        **metadata: Any,
    ) -> Iterator[ActionContext]:
        frame = ActionContext(action_name, fragment_name, criteria, metadata, parent=cls.current())
        cls._frames.top = frame
        try:
            yield frame
        finally:
            cls._frames.top = frame.parent

    @classmethod
    def describe_current(cls) -> str:
        frame = cls.current()
        return frame.description if frame else "operation"

    @classmethod
    def clear(cls) -> None:
        cls._frames.top = None


def _report(context: ActionContext, fragment, status: str, arguments: Dict[str, Any],
            exc: Optional[BaseException] = None) -> None:
    from .actionlogger import ACTION_LOGGER

    ACTION_LOGGER.log(
        event="action_finish",
        action=context.action_name,
        action_id=context.action_id,
        fragment=fragment.name,
        criteria=context.criteria,
        status=status,
        duration_ms=int(context.elapsed_time * 1000),
        metadata=arguments,
        exception=exc,
        phase="execute",
    )


def tracked(action_name: Optional[str] = None) -> Callable[[F], F]:
    """
    Run a Fragment method inside an action context and log how it ended.

    On failure the innermost tracked call hands the error to the fragment's
    ``_on_failure`` so the trace and artifacts are attached exactly once.
    """
    def decorator(func: F) -> F:
        name = action_name or func.__name__
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            arguments = signature.bind(self, *args, **kwargs).arguments
            passed = dict(list(arguments.items())[1:])  # drop self
            with ActionContextManager.action(name, self.name, self.criteria.describe()) as context:
                try:
                    result = func(self, *args, **kwargs)
                except Exception as exc:
                    if getattr(exc, "action_trace", None) is None:
                        self._on_failure(exc, context)
                    _report(context, self, "error", passed, exc)
                    raise
                _report(context, self, "ok", passed)
                return result

        return wrapper  # type: ignore[return-value]

    return decorator
