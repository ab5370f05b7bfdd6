"""Throttle interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of an admission check.

    A denial is an expected outcome, not an error: callers surface it to the
    client as "rate limited" with the retry hint.

    Attributes:
        allowed: Whether the operation may proceed.
        limit: Max admitted operations per key per window.
        remaining: Admissions left in the current window (0 when denied).
        retry_after_seconds: Whole seconds until a slot frees up; None when allowed.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int | None


class AbstractThrottle(ABC):
    """Interface for per-key throttles."""

    @abstractmethod
    def admit(self, key: str, now: float | None = None) -> ThrottleDecision:
        """Decide whether the caller identified by key may proceed.

        Args:
            key: Caller identifier (network address, token subject, ...).
            now: Current time in epoch milliseconds; the throttle's clock when omitted.

        Returns:
            ThrottleDecision describing the outcome.
        """
        raise NotImplementedError

    def start(self) -> None:
        """Start background maintenance, if the implementation has any."""

    def stop(self) -> None:
        """Stop background maintenance started by :meth:`start`."""
