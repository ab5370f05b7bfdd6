"""Application-level exception types.

Domain errors raised by services and adapters. The HTTP layer maps each
subclass to a status code in :mod:`dreamgate.core.exception_handlers`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients."""

    hint: str
    min_chars: int
    max_chars: int
    actual_chars: int
    retry_after_seconds: int
    limit: int
    attempts: int
    model: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for clients and logs.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input or configuration validation fails."""


class LLMAppError(AppError):
    """Raised when the LLM provider fails or returns unusable output."""


@dataclass
class RateLimitedAppError(AppError):
    """Raised by the HTTP layer when the throttle denies a request.

    Attributes:
        headers: Response headers to attach (Retry-After and friends).
    """

    headers: dict[str, str] = field(default_factory=dict)
