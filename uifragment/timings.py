# uifragment/timings.py
"""
@file timings.py
@brief Timing presets: per-verification wait families and per-action retry families.
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any, Dict

WAIT_KINDS = ("presence", "absence", "size", "text", "attribute", "display", "custom")
ACTION_KINDS = ("action", "click_action", "type_action", "read_action")


def _waits(timeout: float, interval: float, **extra: Any) -> Dict[str, Dict[str, Any]]:
    return {f"{kind}_wait": dict(timeout=timeout, interval=interval, **extra) for kind in WAIT_KINDS}


TIMEOUT_FIELDS: Dict[str, Dict[str, Any]] = {
    **_waits(10.0, 0.1),
    # action families: timeout caps the retry loop in wall-clock seconds
    "action": {"timeout": 5.0, "interval": 0.1, "retry_count": 3},
    "click_action": {"timeout": 5.0, "interval": 0.1, "retry_count": 3},
    "type_action": {"timeout": 5.0, "interval": 0.1, "retry_count": 3},
    "read_action": {"timeout": 3.0, "interval": 0.05, "retry_count": 3},
}

# plain (non-timing) settings and their defaults
SETTING_FIELDS: Dict[str, Any] = {"artifacts_dir": None}

# "action" in a preset fans out to every action family
PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "fast": {
        **_waits(5.0, 0.05),
        "action": {"timeout": 3.0, "interval": 0.05, "retry_count": 2},
    },
    "slow": {
        **_waits(20.0, 0.25),
        "absence_wait": {"timeout": 30.0, "interval": 0.25},
        "action": {"timeout": 8.0, "interval": 0.25, "retry_count": 4},
    },
    "ci": {
        **_waits(20.0, 0.2, backoff=1.5, max_interval=1.0),
        "absence_wait": {"timeout": 30.0, "interval": 0.2, "backoff": 1.5, "max_interval": 1.0},
        "action": {"timeout": 10.0, "interval": 0.3, "retry_count": 5},
    },
}


def list_presets() -> Dict[str, Dict[str, Any]]:
    return {"default": {}, **PRESET_OVERRIDES}


def build_preset_values(preset: str) -> Dict[str, Any]:
    """Default values with the named preset layered on top; raises ValueError for unknown presets."""
    key = (preset or "default").lower()
    presets = list_presets()
    if key not in presets:
        raise ValueError(f"Unknown timing preset: {preset}")

    values: Dict[str, Any] = {**deepcopy(TIMEOUT_FIELDS), **deepcopy(SETTING_FIELDS)}
    for name, change in presets[key].items():
        targets = ACTION_KINDS if name == "action" else (name,)
        for target in targets:
            if target in TIMEOUT_FIELDS:
                values[target] = {**values[target], **change}
            else:
                values[target] = change
    return values
