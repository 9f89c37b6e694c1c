# PATH: core/time.py
"""
Time utilities for XARB.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def now_seconds() -> int:
    """Get current Unix timestamp in whole seconds."""
    return int(time.time())


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def swap_deadline(window_seconds: int, current_time: Optional[int] = None) -> int:
    """
    Unix deadline for a router swap: now + window.

    Args:
        window_seconds: How long the swap stays valid
        current_time: Override for "now" (seconds)
    """
    if window_seconds <= 0:
        raise ValueError(f"window_seconds must be positive, got {window_seconds}")
    current = current_time if current_time is not None else now_seconds()
    return current + window_seconds
