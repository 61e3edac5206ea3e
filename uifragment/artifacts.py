# uifragment/artifacts.py
"""
Failure artifact capture (screenshots) for fragment operations.
Capture is best effort: a broken driver must not mask the original failure.
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Dict, Optional

from .interfaces import DriverPort

logger = logging.getLogger(__name__)


def _ts() -> str:
    """Generate timestamp string for file naming."""
    return time.strftime("%Y%m%d_%H%M%S")


def _safe(prefix: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", prefix).strip("_") or "fragment"


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    os.makedirs(path, exist_ok=True)


def capture_failure_artifacts(
    driver: DriverPort,
    out_dir: Optional[str],
    prefix: str,
) -> Dict[str, str]:
    """
    Capture artifacts for a failed fragment operation.

    @param driver DriverPort of the failing fragment
    @param out_dir Output directory; nothing is captured when None
    @param prefix File prefix, usually the fragment name
    @return Dict of artifact types to file paths
    """
    artifacts: Dict[str, str] = {}
    if not out_dir:
        return artifacts

    path = os.path.join(out_dir, f"{_safe(prefix)}_{_ts()}_screenshot.png")
    try:
        ensure_dir(out_dir)
        written = driver.screenshot(path)
        if written:
            artifacts["screenshot"] = written
    except Exception as e:
        logger.warning("Could not capture failure screenshot for %s: %s", prefix, e)

    return artifacts
