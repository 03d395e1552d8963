"""
Event router: webhook type + data -> typed routed event.

``route`` is pure. It reads the provider payload once and produces one of
the frozen dataclasses below, so handlers and the transition engine never
touch raw provider JSON.

Routing table (Square):
    payment.created / payment.updated
        COMPLETED          -> PaymentSucceeded
        FAILED / CANCELED  -> PaymentFailed
        other statuses     -> Unhandled
    refund.created / refund.updated
        COMPLETED          -> RefundCompleted
        FAILED / REJECTED  -> RefundFailed
        other statuses     -> Unhandled
    customer.created / customer.updated -> CustomerUpserted
    anything else                       -> Unhandled

Usage:
    from payments.webhooks.router import PaymentSucceeded, route

    routed = route(envelope.event_type, envelope.data)
    if isinstance(routed, PaymentSucceeded):
        ...
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Union

from payments.exceptions import WebhookValidationError

PAYMENT_EVENT_TYPES = frozenset({"payment.created", "payment.updated"})
REFUND_EVENT_TYPES = frozenset({"refund.created", "refund.updated"})
CUSTOMER_EVENT_TYPES = frozenset({"customer.created", "customer.updated"})

PAYMENT_FAILED_STATUSES = frozenset({"FAILED", "CANCELED"})
REFUND_FAILED_STATUSES = frozenset({"FAILED", "REJECTED"})
COMPLETED = "COMPLETED"

CENTS = Decimal("0.01")


# =============================================================================
# Routed Event Variants
# =============================================================================


@dataclass(frozen=True)
class PaymentSucceeded:
    provider_transaction_id: str
    amount: Decimal
    currency: str
    order_id: str = ""


@dataclass(frozen=True)
class PaymentFailed:
    provider_transaction_id: str
    status: str
    error_code: str = ""
    error_message: str = ""
    order_id: str = ""


@dataclass(frozen=True)
class RefundCompleted:
    provider_refund_id: str
    provider_transaction_id: str
    amount: Decimal
    currency: str
    reason: str = ""


@dataclass(frozen=True)
class RefundFailed:
    provider_refund_id: str
    provider_transaction_id: str
    status: str
    amount: Decimal | None = None
    currency: str = ""
    reason: str = ""


@dataclass(frozen=True)
class CustomerUpserted:
    provider_customer_id: str
    email: str = ""
    given_name: str = ""
    family_name: str = ""


@dataclass(frozen=True)
class Unhandled:
    event_type: str
    reason: str = ""


RoutedEvent = Union[
    PaymentSucceeded,
    PaymentFailed,
    RefundCompleted,
    RefundFailed,
    CustomerUpserted,
    Unhandled,
]


def summarize(routed: RoutedEvent) -> dict[str, Any]:
    """JSON-safe dict of a routed event for ledger summaries and logs."""
    summary = {"routed_as": type(routed).__name__}
    for key, value in asdict(routed).items():
        summary[key] = str(value) if isinstance(value, Decimal) else value
    return summary


# =============================================================================
# Routing
# =============================================================================


def route(event_type: str, event_data: dict[str, Any]) -> RoutedEvent:
    """
    Map a webhook type and its ``data`` object to a routed event.

    Raises:
        WebhookValidationError: The type is known but its resource is
            missing or malformed.
    """
    if event_type in PAYMENT_EVENT_TYPES:
        return _route_payment(event_type, event_data)
    if event_type in REFUND_EVENT_TYPES:
        return _route_refund(event_type, event_data)
    if event_type in CUSTOMER_EVENT_TYPES:
        return _route_customer(event_type, event_data)
    return Unhandled(event_type=event_type, reason="unsupported event type")


def _route_payment(event_type: str, event_data: dict[str, Any]) -> RoutedEvent:
    payment = _resource(event_data, "payment", event_type)
    transaction_id = _required_str(payment, "id", event_type)
    status = str(payment.get("status") or "").upper()
    order_id = str(payment.get("order_id") or "")

    if status == COMPLETED:
        amount, currency = _money(payment, "amount_money", event_type)
        if amount <= 0:
            raise WebhookValidationError(
                "Payment amount must be positive",
                error_code="INVALID_AMOUNT",
                details={"event_type": event_type, "payment_id": transaction_id},
            )
        return PaymentSucceeded(
            provider_transaction_id=transaction_id,
            amount=amount,
            currency=currency,
            order_id=order_id,
        )

    if status in PAYMENT_FAILED_STATUSES:
        error_code, error_message = _payment_error(payment)
        return PaymentFailed(
            provider_transaction_id=transaction_id,
            status=status,
            error_code=error_code or status,
            error_message=error_message,
            order_id=order_id,
        )

    return Unhandled(event_type=event_type, reason=f"payment status {status or 'missing'}")


def _route_refund(event_type: str, event_data: dict[str, Any]) -> RoutedEvent:
    refund = _resource(event_data, "refund", event_type)
    refund_id = _required_str(refund, "id", event_type)
    payment_id = _required_str(refund, "payment_id", event_type)
    status = str(refund.get("status") or "").upper()
    reason = str(refund.get("reason") or "")

    if status == COMPLETED:
        amount, currency = _money(refund, "amount_money", event_type)
        if amount <= 0:
            raise WebhookValidationError(
                "Refund amount must be positive",
                error_code="INVALID_AMOUNT",
                details={"event_type": event_type, "refund_id": refund_id},
            )
        return RefundCompleted(
            provider_refund_id=refund_id,
            provider_transaction_id=payment_id,
            amount=amount,
            currency=currency,
            reason=reason,
        )

    if status in REFUND_FAILED_STATUSES:
        amount, currency = None, ""
        if isinstance(refund.get("amount_money"), dict):
            amount, currency = _money(refund, "amount_money", event_type)
        return RefundFailed(
            provider_refund_id=refund_id,
            provider_transaction_id=payment_id,
            status=status,
            amount=amount,
            currency=currency,
            reason=reason,
        )

    return Unhandled(event_type=event_type, reason=f"refund status {status or 'missing'}")


def _route_customer(event_type: str, event_data: dict[str, Any]) -> RoutedEvent:
    customer = _resource(event_data, "customer", event_type)
    return CustomerUpserted(
        provider_customer_id=_required_str(customer, "id", event_type),
        email=str(customer.get("email_address") or ""),
        given_name=str(customer.get("given_name") or ""),
        family_name=str(customer.get("family_name") or ""),
    )


# =============================================================================
# Payload helpers
# =============================================================================


def _resource(event_data: dict[str, Any], name: str, event_type: str) -> dict[str, Any]:
    obj = event_data.get("object")
    resource = obj.get(name) if isinstance(obj, dict) else None
    if not isinstance(resource, dict):
        raise WebhookValidationError(
            f"Webhook data is missing the '{name}' object",
            error_code="MALFORMED_RESOURCE",
            details={"event_type": event_type},
        )
    return resource


def _required_str(resource: dict[str, Any], key: str, event_type: str) -> str:
    value = resource.get(key)
    if not isinstance(value, str) or not value:
        raise WebhookValidationError(
            f"Webhook resource is missing '{key}'",
            error_code="MALFORMED_RESOURCE",
            details={"event_type": event_type, "field": key},
        )
    return value


def _money(resource: dict[str, Any], key: str, event_type: str) -> tuple[Decimal, str]:
    """Convert ``{"amount": <minor units>, "currency": "USD"}`` to Decimal."""
    money = resource.get(key)
    amount = money.get("amount") if isinstance(money, dict) else None
    currency = money.get("currency") if isinstance(money, dict) else None
    if (
        not isinstance(amount, int)
        or isinstance(amount, bool)
        or not isinstance(currency, str)
        or not currency
    ):
        raise WebhookValidationError(
            f"Webhook resource has an invalid '{key}'",
            error_code="MALFORMED_RESOURCE",
            details={"event_type": event_type, "field": key},
        )
    return (Decimal(amount) / 100).quantize(CENTS, rounding=ROUND_HALF_UP), currency.upper()


def _payment_error(payment: dict[str, Any]) -> tuple[str, str]:
    code = str(payment.get("error_code") or "")
    message = str(payment.get("error_message") or "")
    errors = payment.get("errors")
    if not code and isinstance(errors, list) and errors and isinstance(errors[0], dict):
        code = str(errors[0].get("code") or "")
        message = message or str(errors[0].get("detail") or "")
    return code, message
