"""
Single source for "now" time. Supports deterministic mode for tests via
CRYPTO_MTF_DETERMINISTIC_TIME (ISO format, e.g. 2026-01-01T00:00:00Z).
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Optional


def now_utc_iso() -> str:
    """
    Return current UTC time in ISO format (seconds).
    If env CRYPTO_MTF_DETERMINISTIC_TIME is set, return that value instead.
    """
    fixed = os.environ.get("CRYPTO_MTF_DETERMINISTIC_TIME", "").strip()
    if fixed:
        return fixed if fixed.endswith("Z") or "+" in fixed else f"{fixed}Z"
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def epoch_to_iso(ts: Optional[float]) -> Optional[str]:
    """Epoch seconds -> ISO UTC string; None stays None."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="seconds")
