# src/focusmate/core/clock.py

from __future__ import annotations

import time


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)
