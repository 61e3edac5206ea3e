# uifragment/actionlogger.py
"""
@file actionlogger.py
@brief Structured events for every tracked fragment operation.

Events are rendered either as ``|``-separated lines or as JSON Lines. Typed
text is shortened and secrets are blanked before anything is rendered.
"""

from __future__ import annotations

import json
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .eventlog import EventSink

SENSITIVE_KEYS = {"password", "passwd", "secret", "token"}
TEXT_ACTIONS = {"type_text", "send_keys"}
VISIBLE_TEXT_CHARS = 10
FORMATS = ("line", "jsonl")

_LINE_KEYS = ("event", "action_id", "phase", "attempt", "status", "duration_ms", "run_id")


def redact(action: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Blank secrets and shorten text typed by text-entry actions."""
    cleaned: Dict[str, Any] = {}
    for key, value in metadata.items():
        if key.lower() in SENSITIVE_KEYS:
            value = "***"
        elif key == "text" and action in TEXT_ACTIONS:
            value = str(value)
            if len(value) > VISIBLE_TEXT_CHARS:
                value = value[:VISIBLE_TEXT_CHARS] + "..."
        cleaned[key] = value
    return cleaned


def describe_exception(exc: BaseException, limit: int) -> Dict[str, Any]:
    """Type, message, truncated traceback and direct cause of an exception."""
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).strip()
    if len(tb) > limit:
        tb = tb[:limit] + "...<truncated>"
    info: Dict[str, Any] = {"type": type(exc).__name__, "message": str(exc), "traceback": tb}
    if exc.__cause__ is not None:
        info["cause_type"] = type(exc.__cause__).__name__
        info["cause_message"] = str(exc.__cause__)
    return info


def format_action_line(event: Dict[str, Any]) -> str:
    parts = [event["timestamp"], event["level"], event["action"]]
    parts += [f"{k}={event[k]}" for k in _LINE_KEYS if event.get(k) not in (None, "")]
    parts += [f"{k}='{event[k]}'" for k in ("fragment", "criteria") if event.get(k)]
    parts += [f"{k}={v}" for k, v in event["metadata"].items()]
    exc = event.get("exception")
    if exc:
        parts += [f"exc_type={exc['type']}", f"exc_message={exc['message']}"]
        if "cause_type" in exc:
            parts.append(f"cause_type={exc['cause_type']}")
    return " | ".join(parts)


def format_action_jsonl(event: Dict[str, Any]) -> str:
    return json.dumps(event, ensure_ascii=False, separators=(",", ":"), default=str)


class ActionLogger(EventSink):
    """Action event logger shared by tracked operations and retry loops."""

    def __init__(self) -> None:
        super().__init__()
        self._run_id = "default"
        self._render = format_action_line
        self._traceback_limit = 4000
        self._retry_sample = 1

    def configure(
        self,
        *,
        console: bool = True,
        file_path: Optional[str] = None,
        level: str = "INFO",
        run_id: Optional[str] = None,
        format: str = "line",
        max_traceback_chars: int = 4000,
        sample_retry_events: int = 1,
    ) -> None:
        """
        Set destinations and rendering.

        ``sample_retry_events`` keeps the first retry attempt and every n-th one
        after it; ``max_traceback_chars`` never goes below 256.
        """
        fmt = (format or "line").lower()
        if fmt not in FORMATS:
            raise ValueError(f"ActionLogger format must be one of {FORMATS}")
        self._configure_output(console, file_path, level)
        self._render = format_action_jsonl if fmt == "jsonl" else format_action_line
        self._traceback_limit = max(256, int(max_traceback_chars))
        self._retry_sample = max(1, int(sample_retry_events))
        self.set_run_id(run_id)

    def set_run_id(self, run_id: Optional[str]) -> None:
        if run_id:
            self._run_id = run_id

    def should_log_retry_attempt(self, attempt: int) -> bool:
        return attempt <= 1 or attempt % self._retry_sample == 0

    def log(
        self,
        *,
        action: str,
        fragment: Optional[str] = None,
        criteria: Optional[str] = None,
        status: str = "ok",
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        action_id: Optional[str] = None,
        phase: Optional[str] = None,
        attempt: Optional[int] = None,
        event: Optional[str] = None,
    ) -> None:
        if not self.is_enabled() or not self._passes(status):
            return
        record: Dict[str, Any] = {
            "timestamp": time.strftime("%H:%M:%S"),
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": self.level,
            "event": event or "action",
            "action": action,
            "action_id": action_id,
            "fragment": fragment,
            "criteria": criteria,
            "phase": phase,
            "status": status,
            "attempt": attempt,
            "duration_ms": duration_ms,
            "metadata": redact(action, dict(metadata or {})),
            "run_id": self._run_id,
        }
        if exception is not None:
            record["exception"] = describe_exception(exception, self._traceback_limit)
        self._emit(record, self._render(record))


ACTION_LOGGER = ActionLogger()
