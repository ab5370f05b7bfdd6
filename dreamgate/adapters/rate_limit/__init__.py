"""Throttle adapters.

The HTTP layer depends on :class:`AbstractThrottle` only, so the in-memory
sliding window can later be replaced by a shared store (e.g., Redis) without
touching the routes.
"""

from dreamgate.adapters.rate_limit.base import AbstractThrottle, ThrottleDecision
from dreamgate.adapters.rate_limit.sliding_window import SlidingWindowThrottle

__all__ = [
    "AbstractThrottle",
    "SlidingWindowThrottle",
    "ThrottleDecision",
]
