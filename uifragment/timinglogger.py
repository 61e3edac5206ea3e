# uifragment/timinglogger.py
"""
@file timinglogger.py
@brief Poll and retry timing events (start, attempts, success, timeout).
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from .eventlog import EventSink


def format_timing_line(event: Dict[str, Any]) -> str:
    """Render ``[status] [timing] time=.. event=.. description=.. k=v ...``."""
    fields = {"time": event["time"], "event": event["event"], "description": event.get("description")}
    fields.update(event.get("metadata") or {})
    rendered = " ".join(f"{k}={v}" for k, v in fields.items() if v not in (None, ""))
    return f"[{event['status']}] [timing] {rendered}"


class TimingLogger(EventSink):
    """Records how long synchronization takes; disabled until enabled."""

    def configure(self, *, console: bool = True, file_path: Optional[str] = None, level: str = "INFO") -> None:
        self._configure_output(console, file_path, level)

    def log(
        self,
        *,
        event: str,
        description: Optional[str] = None,
        status: str = "info",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.is_enabled() or not self._passes(status):
            return
        record = {
            "time": time.strftime("%H:%M:%S"),
            "event": event,
            "status": status.lower(),
            "description": description,
            "metadata": dict(metadata or {}),
        }
        self._emit(record, format_timing_line(record))


TIMING_LOGGER = TimingLogger()
