"""
Payment-specific exceptions for payment and webhook operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment entity lookup failures
    └── PaymentValidationError - Payment validation failures

    WebhookAuthenticationError - Missing/invalid signature (HTTP 401, no writes)
    WebhookValidationError - Malformed or stale payload (HTTP 200, no writes)
    UnknownProviderError - No configuration for the provider (HTTP 404)
    DuplicateEventError - Event id already in the ledger (not a failure)
    TransitionError - Event valid but inapplicable to current state
        (HTTP 200, ledger outcome "rejected", no mutation)
    DownstreamError - Side effect failed after commit (logged, never rolled back)

Usage:
    from payments.exceptions import TransitionError

    raise TransitionError(
        "Booking is cancelled",
        error_code="BOOKING_TERMINAL",
        details={"booking_id": str(booking.id), "status": booking.status},
    )
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    DownstreamError,
    NotFoundError,
    ValidationError,
)

# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for payment operations."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment entity cannot be found.

    Example:
        payment = Payment.objects.filter(provider_transaction_id=txn).first()
        if not payment:
            raise PaymentNotFoundError(
                f"Payment {txn} not found",
                details={"transaction_id": txn},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentValidationError(PaymentError):
    """
    Raised when payment input is invalid.

    Use for non-positive amounts, currency mismatches and rates outside
    [0, 1].
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


# =============================================================================
# Webhook Exceptions
# =============================================================================


class WebhookAuthenticationError(BaseApplicationError):
    """
    Raised when a webhook cannot be authenticated.

    Processing stops before any database write. The only error that maps
    to HTTP 401.
    """

    default_error_code: str = "WEBHOOK_AUTHENTICATION_FAILED"


class WebhookValidationError(ValidationError):
    """
    Raised when a webhook payload is malformed or outside the replay window.

    Acknowledged with HTTP 200: the provider would resend the same bytes.
    Processing stops before any database write.
    """

    default_error_code: str = "WEBHOOK_VALIDATION_ERROR"


class UnknownProviderError(NotFoundError):
    """Raised when a webhook arrives for a provider with no configuration."""

    default_error_code: str = "UNKNOWN_PROVIDER"


class DuplicateEventError(ConflictError):
    """
    Raised when an event id is already present in the ledger.

    Not a failure: callers treat it as "already handled" and acknowledge.
    """

    default_error_code: str = "DUPLICATE_EVENT"


class TransitionError(ConflictError):
    """
    Raised when an event cannot be applied to the current entity state.

    Examples: a refund for a payment that never succeeded, a payment event
    for a cancelled booking, a refund exceeding the remaining amount.

    The transition engine raises it before mutating anything; the webhook
    processor records the event as "rejected" and acknowledges it.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    # Webhooks
    "DownstreamError",
    "DuplicateEventError",
    "TransitionError",
    "UnknownProviderError",
    "WebhookAuthenticationError",
    "WebhookValidationError",
]
