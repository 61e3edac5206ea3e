# uifragment/eventlog.py
"""
@file eventlog.py
@brief Shared output plumbing for the timing and action loggers.

A sink is disabled until enabled, writes formatted lines to stdout and/or a
file, and can additionally record raw events in memory so a test-framework
integration can attach them to its report.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional

LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
STATUS_LEVELS = {"info": 20, "ok": 20, "success": 20, "warning": 30, "error": 40}


class EventSink:
    """Console/file/in-memory destination for structured log events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled = False
        self._console = True
        self._file_path: Optional[str] = None
        self._threshold = LEVELS["INFO"]
        self._recorders: List[List[Dict[str, Any]]] = []

    def _configure_output(self, console: bool, file_path: Optional[str], level: str) -> None:
        level = (level or "INFO").upper()
        if level not in LEVELS:
            raise ValueError(f"{type(self).__name__} level must be one of {sorted(LEVELS)}")
        with self._lock:
            self._console = bool(console)
            self._file_path = file_path
            self._threshold = LEVELS[level]

    @property
    def level(self) -> str:
        return next(name for name, value in LEVELS.items() if value == self._threshold)

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        with self._lock:
            self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled or bool(self._recorders)

    def _passes(self, status: str) -> bool:
        return STATUS_LEVELS.get(status.lower(), LEVELS["INFO"]) >= self._threshold

    @contextmanager
    def recording(self) -> Generator[List[Dict[str, Any]], None, None]:
        """Collect every event emitted inside the block, whether or not output is enabled."""
        events: List[Dict[str, Any]] = []
        with self._lock:
            self._recorders.append(events)
        try:
            yield events
        finally:
            with self._lock:
                self._recorders.remove(events)

    def _emit(self, event: Dict[str, Any], line: str) -> None:
        with self._lock:
            for events in self._recorders:
                events.append(event)
            if not self._enabled:
                return
            if self._console:
                print(line, flush=True)
            if self._file_path:
                self._append(line)

    def _append(self, line: str) -> None:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self._file_path)) or ".", exist_ok=True)
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            pass
