"""Content-addressed in-memory result cache used to avoid repeated LLM calls.

Entries are keyed by a fingerprint of the normalized input text, expire after
a TTL, and the store is capped at ``max_entries``. When the cap is reached,
the earliest-inserted entries are evicted in bulk (FIFO by insertion order;
reads do not refresh an entry's position).

State is process-local and lost on restart.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import OrderedDict
from dataclasses import dataclass
from hashlib import sha256
from typing import Any

from dreamgate.utils.clock import Clock, now_ms
from dreamgate.utils.text_normalizer import normalize_for_fingerprint

logger = logging.getLogger(__name__)

MAX_ENTRIES = 1_000
DEFAULT_TTL_MS = 24 * 60 * 60 * 1_000
EVICT_FRACTION = 0.10


def fingerprint(text: str) -> str:
    """Derive a deterministic cache key from input text.

    Args:
        text: Input text (e.g., a dream description).

    Returns:
        Hex-encoded SHA-256 digest (64 chars) of the normalized text.

    Raises:
        TypeError: If text is not a string.
    """

    if not isinstance(text, str):
        raise TypeError(f"fingerprint expects str, got {type(text).__name__}")
    return sha256(normalize_for_fingerprint(text).encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    """Cached value with its absolute expiry (epoch ms)."""

    value: Any
    expires_at: float


class ResultCache:
    """In-memory TTL cache with bounded size and FIFO bulk eviction.

    Attributes:
        max_entries: Maximum number of entries held after any insert.
        default_ttl_ms: TTL applied when ``store`` gets no override.
        evict_fraction: Share of ``max_entries`` evicted when the cap is hit.
    """

    fingerprint = staticmethod(fingerprint)

    def __init__(
        self,
        *,
        max_entries: int = MAX_ENTRIES,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        evict_fraction: float = EVICT_FRACTION,
        clock: Clock = now_ms,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if default_ttl_ms < 1:
            raise ValueError("default_ttl_ms must be >= 1")
        if not 0 < evict_fraction <= 1:
            raise ValueError("evict_fraction must be in (0, 1]")

        self._max_entries = max_entries
        self._default_ttl_ms = default_ttl_ms
        self._evict_fraction = evict_fraction
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"ResultCache(max_entries={self._max_entries}, "
            f"default_ttl_ms={self._default_ttl_ms}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def default_ttl_ms(self) -> int:
        return self._default_ttl_ms

    @property
    def evict_batch_size(self) -> int:
        """Number of entries removed when the cache is full."""

        # round() guards against float noise such as 70 * 0.1 == 7.000000000000001
        return max(1, math.ceil(round(self._max_entries * self._evict_fraction, 9)))

    def lookup(self, key: str, default: Any = None) -> Any:
        """Return the cached value for key, or ``default`` on a miss.

        An entry whose expiry has passed is deleted on the way out, so a later
        lookup misses as well.

        Args:
            key: Fingerprint produced by :func:`fingerprint`.
            default: Value returned on a miss.

        Returns:
            The stored value unchanged, or ``default``.
        """

        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key": key[:16], "reason": "not_found"})
                return default

            if self._clock() > entry.expires_at:
                del self._store[key]
                self._misses += 1
                self._expirations += 1
                logger.debug("cache.miss", extra={"cache_key": key[:16], "reason": "expired"})
                return default

            self._hits += 1
            logger.debug("cache.hit", extra={"cache_key": key[:16]})
            return entry.value

    def store(self, key: str, value: Any, ttl_ms: int | None = None) -> None:
        """Insert or overwrite an entry.

        If the cache already holds ``max_entries`` entries, the oldest
        ``evict_batch_size`` entries by insertion order are dropped first.
        Overwriting an existing key keeps its original insertion position.

        Args:
            key: Fingerprint produced by :func:`fingerprint`.
            value: Result to cache. Callers store successful results only.
            ttl_ms: Optional TTL override in milliseconds.

        Raises:
            ValueError: If ttl_ms is not positive.
        """

        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            raise ValueError("ttl_ms must be > 0")

        with self._lock:
            if len(self._store) >= self._max_entries:
                self._evict_oldest_locked()
            self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

            logger.debug(
                "cache.store",
                extra={"cache_key": key[:16], "size": len(self._store), "ttl_ms": ttl},
            )

    def clear(self) -> None:
        """Remove all entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._expirations = 0

    def stats(self) -> dict[str, int | float]:
        """Return cache counters without exposing keys or values."""

        with self._lock:
            return {
                "max_entries": self._max_entries,
                "default_ttl_ms": self._default_ttl_ms,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def _evict_oldest_locked(self) -> None:
        batch = min(self.evict_batch_size, len(self._store))
        for _ in range(batch):
            self._store.popitem(last=False)
        self._evictions += batch
        logger.info(
            "cache.evict",
            extra={"evicted": batch, "size": len(self._store), "max_entries": self._max_entries},
        )
