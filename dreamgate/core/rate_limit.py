"""Throttle dependency for FastAPI routes.

Wires the throttle adapter into the HTTP layer:
- The throttle instance lives on ``app.state`` (built by the app factory),
  so tests and multiple apps never share state.
- Client keys come from the first X-Forwarded-For hop, then the peer
  address, then a shared fallback bucket.
- A denial becomes :class:`RateLimitedAppError`, rendered as HTTP 429.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request

from dreamgate.adapters.rate_limit.base import AbstractThrottle
from dreamgate.core.config import settings
from dreamgate.core.errors import RateLimitedAppError

logger = logging.getLogger(__name__)

FORWARDED_FOR_HEADER = "X-Forwarded-For"

# Every caller without a derivable identity shares this bucket.
UNKNOWN_CLIENT_KEY = "unknown"


def derive_client_key(forwarded_for: str | None, peer_host: str | None) -> str:
    """Pick the identifier a request is throttled under.

    Args:
        forwarded_for: Raw X-Forwarded-For header value, if any.
        peer_host: Socket peer address, if known.

    Returns:
        The first forwarded hop (trimmed), else the peer address, else
        ``UNKNOWN_CLIENT_KEY``.

    Examples:
        >>> derive_client_key("203.0.113.7, 10.0.0.1", "10.0.0.2")
        '203.0.113.7'
        >>> derive_client_key(None, "10.0.0.2")
        '10.0.0.2'
        >>> derive_client_key(" , ", None)
        'unknown'
    """
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    if peer_host:
        return peer_host

    return UNKNOWN_CLIENT_KEY


def client_key_from_request(request: Request) -> str:
    """Derive the throttle key for an incoming request."""
    peer_host = request.client.host if request.client else None
    return derive_client_key(request.headers.get(FORWARDED_FOR_HEADER), peer_host)


def _hash_client_key(key: str) -> str:
    """Hash the client key for logging without exposing addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def get_throttle(request: Request) -> AbstractThrottle:
    """Return the throttle owned by the running application."""
    return request.app.state.throttle


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency gating a route with the application's throttle.

    Admits the caller or raises 429 with a Retry-After hint. Nothing is
    recorded for denied attempts.

    Args:
        request: FastAPI request.

    Raises:
        RateLimitedAppError: When the caller exhausted its window.
    """
    if not settings.throttle.enabled:
        return

    throttle = get_throttle(request)
    key = client_key_from_request(request)
    key_hash = _hash_client_key(key)

    decision = throttle.admit(key)
    if decision.allowed:
        logger.debug(
            "throttle.allowed",
            extra={
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
            },
        )
        return

    retry_after = decision.retry_after_seconds or 1
    logger.warning(
        "throttle.denied",
        extra={
            "key_hash": key_hash,
            "shared_bucket": key == UNKNOWN_CLIENT_KEY,
            "limit": decision.limit,
            "retry_after_s": retry_after,
            "path": request.url.path,
        },
    )

    headers = {"Retry-After": str(retry_after)}
    if settings.throttle.include_headers:
        headers["X-RateLimit-Limit"] = str(decision.limit)
        headers["X-RateLimit-Remaining"] = str(decision.remaining)

    raise RateLimitedAppError(
        code="rate_limited",
        message="Too many requests. Please try again later.",
        details={"retry_after_seconds": retry_after},
        headers=headers,
    )
