"""Millisecond time helpers shared by the throttle and the result cache."""

from __future__ import annotations

import math
import time
from typing import Callable

# Returns the current time as UNIX epoch milliseconds.
Clock = Callable[[], float]


def now_ms() -> float:
    """Return wall-clock time in epoch milliseconds."""

    return time.time() * 1000.0


def ms_to_seconds_ceil(duration_ms: float) -> int:
    """Convert a millisecond duration to whole seconds, rounding up."""

    return int(math.ceil(duration_ms / 1000.0))
