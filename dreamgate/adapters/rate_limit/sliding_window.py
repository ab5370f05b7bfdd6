"""In-memory sliding-window throttle.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a lock serializes admission checks and the background sweep.
"""

from __future__ import annotations

import logging
import threading

from dreamgate.adapters.rate_limit.base import AbstractThrottle, ThrottleDecision
from dreamgate.utils.clock import Clock, ms_to_seconds_ceil, now_ms

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_REQUESTS = 5
DEFAULT_SWEEP_INTERVAL_MS = 5 * 60_000


class SlidingWindowThrottle(AbstractThrottle):
    """Throttle counting admissions per key within a trailing window.

    Each key maps to the timestamps (epoch ms) of its admitted requests.
    Every check drops timestamps that fell out of ``(now - window_ms, now]``
    and compares what is left against ``max_requests``. Denied attempts are
    not recorded, so a client hammering a closed window does not extend it.

    A periodic sweep, run on a daemon thread between :meth:`start` and
    :meth:`stop`, drops keys with no recent activity to bound memory. The
    sweep is housekeeping only: :meth:`admit` re-filters on its own.
    """

    def __init__(
        self,
        *,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the throttle.

        Args:
            window_ms: Trailing window length in milliseconds.
            max_requests: Maximum admissions per key per window.
            sweep_interval_ms: Delay between background sweeps.
            clock: Time source returning epoch milliseconds.

        Raises:
            ValueError: If any setting is below 1.
        """
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if sweep_interval_ms < 1:
            raise ValueError("sweep_interval_ms must be >= 1")

        self._window_ms = window_ms
        self._max_requests = max_requests
        self._sweep_interval_ms = sweep_interval_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._timestamps_by_key: dict[str, list[float]] = {}
        self._allowed = 0
        self._denied = 0

        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def running(self) -> bool:
        """Whether the background sweeper thread is alive."""
        sweeper = self._sweeper
        return sweeper is not None and sweeper.is_alive()

    def _recent(self, timestamps: list[float], now: float) -> list[float]:
        """Keep only timestamps strictly inside the trailing window."""
        cutoff = now - self._window_ms
        return [ts for ts in timestamps if ts > cutoff]

    def _build_allowed_decision(self, *, remaining: int) -> ThrottleDecision:
        return ThrottleDecision(
            allowed=True,
            limit=self._max_requests,
            remaining=remaining,
            retry_after_seconds=None,
        )

    def _build_denied_decision(self, *, now: float, oldest: float) -> ThrottleDecision:
        # oldest > now - window_ms, so the wait is always positive
        retry_after = max(1, ms_to_seconds_ceil(oldest + self._window_ms - now))
        return ThrottleDecision(
            allowed=False,
            limit=self._max_requests,
            remaining=0,
            retry_after_seconds=retry_after,
        )

    def admit(self, key: str, now: float | None = None) -> ThrottleDecision:
        """Check the key's trailing window and record the request if allowed.

        Args:
            key: Caller identifier.
            now: Current time in epoch milliseconds; read from the clock when omitted.

        Returns:
            ThrottleDecision with the outcome and retry hint.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        if now is None:
            now = self._clock()

        with self._lock:
            timestamps = self._recent(self._timestamps_by_key.get(key, []), now)

            if len(timestamps) >= self._max_requests:
                self._timestamps_by_key[key] = timestamps
                self._denied += 1
                return self._build_denied_decision(now=now, oldest=timestamps[0])

            timestamps.append(now)
            self._timestamps_by_key[key] = timestamps
            self._allowed += 1
            return self._build_allowed_decision(remaining=self._max_requests - len(timestamps))

    def sweep(self, now: float | None = None) -> int:
        """Re-filter every key and drop the ones left with no timestamps.

        Args:
            now: Current time in epoch milliseconds; read from the clock when omitted.

        Returns:
            Number of keys removed.
        """
        if now is None:
            now = self._clock()

        removed = 0
        with self._lock:
            for key in list(self._timestamps_by_key):
                recent = self._recent(self._timestamps_by_key[key], now)
                if recent:
                    self._timestamps_by_key[key] = recent
                else:
                    del self._timestamps_by_key[key]
                    removed += 1
            remaining_keys = len(self._timestamps_by_key)

        logger.debug(
            "throttle.sweep",
            extra={"removed_keys": removed, "tracked_keys": remaining_keys},
        )
        return removed

    def tracked_keys(self) -> int:
        """Return how many keys currently hold timestamps."""
        with self._lock:
            return len(self._timestamps_by_key)

    def stats(self) -> dict[str, int]:
        """Return throttle counters without exposing client keys."""
        with self._lock:
            return {
                "window_ms": self._window_ms,
                "max_requests": self._max_requests,
                "tracked_keys": len(self._timestamps_by_key),
                "allowed": self._allowed,
                "denied": self._denied,
            }

    def start(self) -> None:
        """Launch the background sweeper. Calling it twice is a no-op."""
        with self._lock:
            if self.running:
                return
            self._stop_event.clear()
            self._sweeper = threading.Thread(
                target=self._run_sweeper,
                name="throttle-sweeper",
                daemon=True,
            )
            self._sweeper.start()

        logger.info(
            "throttle.sweeper_started",
            extra={"sweep_interval_ms": self._sweep_interval_ms},
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the sweeper to exit and wait for it.

        Args:
            timeout: Seconds to wait for the thread to join.
        """
        with self._lock:
            sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return

        self._stop_event.set()
        sweeper.join(timeout)
        logger.info("throttle.sweeper_stopped")

    def _run_sweeper(self) -> None:
        interval_s = self._sweep_interval_ms / 1000.0
        while not self._stop_event.wait(interval_s):
            try:
                self.sweep()
            except Exception:
                # Keep the sweeper alive; admit() does not depend on it.
                logger.exception("throttle.sweep_failed")
