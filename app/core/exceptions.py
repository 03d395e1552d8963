"""
Application exception hierarchy.

Every domain error carries a human message, a machine-readable
``error_code`` and a ``details`` dict that goes straight into log
``extra`` and API error bodies.

Exception Hierarchy:
    BaseApplicationError
    ├── ValidationError - malformed payloads, amounts, identifiers
    ├── NotFoundError - missing booking, payment or provider
    ├── ConflictError - duplicates and rejected state transitions
    └── ExternalServiceError - email, broker and network failures
        └── DownstreamError - a side effect failed on every path

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Booking is already checked out",
        error_code="BOOKING_TERMINAL",
        details={"booking_id": str(booking.id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base for all domain errors.

    ``is_retryable`` tells the resilience layer whether repeating the call
    can succeed; it is False unless a subclass says otherwise.
    """

    default_error_code: str = "APPLICATION_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """``{"error", "error_code"[, "details"]}`` for API bodies and logs."""
        body: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, error_code={self.error_code!r}, details={self.details!r})"


class ValidationError(BaseApplicationError):
    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """The request is valid but contradicts stored state."""

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    A downstream call failed.

    Chain the original error with ``raise ... from`` and keep its text out
    of API responses.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"


class DownstreamError(ExternalServiceError):
    """
    A side effect could not be delivered by the primary path or the fallback.

    The transition that produced it is already committed and stays so.
    """

    default_error_code: str = "DOWNSTREAM_ERROR"


def is_transient_error(exc: BaseException) -> bool:
    """Whether ``exc`` is worth retrying."""
    retryable = getattr(exc, "is_retryable", None)
    if retryable is not None:
        return bool(retryable)
    return isinstance(exc, (TimeoutError, ConnectionError, OSError))
