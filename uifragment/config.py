# uifragment/config.py
"""
@file config.py
@brief Timeout and retry configuration for fragment verifications and actions.

Resolution order for the effective config on a thread:
  1. the innermost ``TimeConfig.override(...)`` block
  2. the run config installed with ``install_run_config``
  3. the process default, built once from the ``default`` preset
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterator, Optional

import yaml

from .exceptions import ConfigError
from .timings import SETTING_FIELDS, TIMEOUT_FIELDS, build_preset_values, list_presets

# action name -> timing family; anything else uses "action"
ACTION_FAMILIES = {
    "click": "click_action",
    "type_text": "type_action",
    "clear": "type_action",
    "text": "read_action",
    "attribute": "read_action",
    "is_displayed": "read_action",
    "resolve": "read_action",
}

CONFIG_FILE_KEYS = {"preset", "artifacts_dir", "overrides"}


@dataclass(frozen=True)
class TimeoutSettings:
    """Timeout, poll interval and optional retry budget/backoff for one family."""
    timeout: float
    interval: float
    retry_count: Optional[int] = None
    backoff: float = 1.0
    max_interval: Optional[float] = None

    def with_overrides(self, **changes: Any) -> TimeoutSettings:
        """Copy with every non-None change applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def parse(cls, family: str, raw: Any) -> TimeoutSettings:
        """Build validated settings from a mapping (or pass settings through)."""
        if isinstance(raw, TimeoutSettings):
            return raw
        if not isinstance(raw, dict):
            raise ConfigError(f"Invalid timeout setting for {family}: {raw}")
        try:
            settings = cls(
                timeout=float(raw["timeout"]),
                interval=float(raw["interval"]),
                retry_count=None if raw.get("retry_count") is None else int(raw["retry_count"]),
                backoff=float(raw.get("backoff", 1.0)),
                max_interval=None if raw.get("max_interval") is None else float(raw["max_interval"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid timeout setting for {family}: {raw}") from e

        if min(settings.timeout, settings.interval) < 0:
            raise ConfigError(f"{family}: timeout and interval must be >= 0")
        if settings.backoff < 1.0:
            raise ConfigError(f"{family}: backoff must be >= 1.0")
        if settings.retry_count is not None and settings.retry_count < 1:
            raise ConfigError(f"{family}: retry_count must be >= 1")
        return settings


class TimeConfig:
    """
    Snapshot of every timing family plus plain settings such as ``artifacts_dir``.

    Families are read as attributes (``config.presence_wait``). Snapshots are
    never changed after construction; ``with_overrides`` returns a new one.
    """

    _default_instance: Optional[TimeConfig] = None
    _default_lock = threading.Lock()
    _thread = threading.local()

    def __init__(self, preset: Optional[str] = None):
        try:
            values = build_preset_values(preset or "default")
        except ValueError as e:
            raise ConfigError(str(e)) from e
        self._values: Dict[str, Any] = {}
        self._load(values)

    def _load(self, values: Dict[str, Any]) -> None:
        for family in TIMEOUT_FIELDS:
            self._values[family] = TimeoutSettings.parse(family, values.get(family))
        for name in SETTING_FIELDS:
            self._values[name] = values.get(name)

    def __getattr__(self, name: str) -> Any:
        values = self.__dict__.get("_values")
        if values is None or name not in values:
            raise AttributeError(name)
        return values[name]

    def _merge(self, overrides: Dict[str, Any]) -> None:
        for key, value in overrides.items():
            if key in TIMEOUT_FIELDS:
                if isinstance(value, dict):
                    value = {**asdict(self._values[key]), **{k: v for k, v in value.items() if v is not None}}
                elif not isinstance(value, TimeoutSettings):
                    raise ConfigError(f"Invalid override for {key}: {value}")
                self._values[key] = TimeoutSettings.parse(key, value)
            elif key in SETTING_FIELDS:
                self._values[key] = value
            else:
                raise ConfigError(f"Unknown TimeConfig field: {key}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: asdict(value) if isinstance(value, TimeoutSettings) else value
            for name, value in self._values.items()
        }

    def clone(self) -> TimeConfig:
        copy = TimeConfig()
        copy._values = dict(self._values)
        return copy

    def with_overrides(self, **overrides: Any) -> TimeConfig:
        """New snapshot with field overrides merged in; the receiver is untouched."""
        copy = self.clone()
        copy._merge(overrides)
        return copy

    def wait_settings(self, kind: str) -> TimeoutSettings:
        """Settings for a polled verification kind, e.g. ``presence``; unknown kinds use ``custom_wait``."""
        return self._values.get(f"{kind}_wait", self._values["custom_wait"])

    def get_action_settings(self, action_name: str) -> TimeoutSettings:
        return self._values[ACTION_FAMILIES.get(action_name, "action")]

    @classmethod
    def build_from(cls, *, preset: str = "default", overrides: Optional[Dict[str, Any]] = None) -> TimeConfig:
        config = cls(preset)
        config._merge(overrides or {})
        return config

    @classmethod
    def default(cls) -> TimeConfig:
        if cls._default_instance is None:
            with cls._default_lock:
                if cls._default_instance is None:
                    cls._default_instance = cls("default")
        return cls._default_instance

    @classmethod
    def install_run_config(cls, config: TimeConfig) -> None:
        cls._thread.run_config = config

    @classmethod
    def clear_run_config(cls) -> None:
        cls._thread.run_config = None

    @classmethod
    def current(cls) -> TimeConfig:
        for attr in ("override", "run_config"):
            config = getattr(cls._thread, attr, None)
            if config is not None:
                return config
        return cls.default()

    @classmethod
    @contextmanager
    def override(cls, **overrides: Any) -> Iterator[TimeConfig]:
        """Apply overrides to the current config on this thread for the duration of the block."""
        outer = getattr(cls._thread, "override", None)
        cls._thread.override = cls.current().with_overrides(**overrides)
        try:
            yield cls._thread.override
        finally:
            cls._thread.override = outer

    @classmethod
    def reset(cls) -> None:
        """Drop this thread's run config and overrides."""
        cls._thread.override = None
        cls._thread.run_config = None


def load_config(path: str) -> TimeConfig:
    """
    Load a TimeConfig snapshot from YAML.

    Expected shape::

        preset: ci
        artifacts_dir: artifacts
        overrides:
          presence_wait: {timeout: 15}
    """
    path = os.path.abspath(path)
    if not os.path.exists(path):
        raise ConfigError(f"Timing config YAML not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Timing config YAML must be a mapping at root.")

    unknown = set(data) - CONFIG_FILE_KEYS
    if unknown:
        raise ConfigError(f"Unknown timing config keys: {sorted(unknown)}")
    overrides = data.get("overrides") or {}
    if not isinstance(overrides, dict):
        raise ConfigError("Timing config 'overrides' must be a mapping")

    overrides = dict(overrides)
    if "artifacts_dir" in data:
        overrides["artifacts_dir"] = data["artifacts_dir"]
    return TimeConfig.build_from(preset=str(data.get("preset", "default")), overrides=overrides)


def available_presets() -> Dict[str, Dict[str, Any]]:
    return list_presets()
