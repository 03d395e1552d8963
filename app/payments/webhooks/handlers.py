"""
Handler registry for routed webhook events.

Each routed event class maps to one handler. Handlers run inside the
webhook transaction and return a HandlerResult; they raise
TransitionError when the event cannot be applied, and the processor turns
that into a "rejected" outcome.

Usage:
    from payments.webhooks.handlers import dispatch_event, register_handler

    @register_handler(PaymentSucceeded)
    def handle_payment_succeeded(event, context) -> HandlerResult:
        ...

    result = dispatch_event(routed, HandlerContext(provider="square", event_id="evt_1"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from payments.models import ProviderCustomer
from payments.services.transitions import TransitionEngine
from payments.side_effects import SideEffect
from payments.state_machines import WebhookOutcome
from payments.webhooks.router import (
    CustomerUpserted,
    PaymentFailed,
    PaymentSucceeded,
    RefundCompleted,
    RefundFailed,
    RoutedEvent,
    Unhandled,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandlerContext:
    provider: str
    event_id: str

    @property
    def actor(self) -> str:
        return f"webhook:{self.provider}"


@dataclass
class HandlerResult:
    """Outcome of a handler plus the side effects to send after commit."""

    outcome: str
    detail: str = ""
    side_effects: list[SideEffect] = field(default_factory=list)


# =============================================================================
# Handler Registry
# =============================================================================


Handler = Callable[[RoutedEvent, HandlerContext], HandlerResult]

# Maps routed event classes to handler functions
WEBHOOK_HANDLERS: dict[type, Handler] = {}


def register_handler(event_class: type) -> Callable[[Handler], Handler]:
    """
    Decorator to register the handler for a routed event class.

    Args:
        event_class: One of the variants in ``payments.webhooks.router``
    """

    def decorator(func: Handler) -> Handler:
        WEBHOOK_HANDLERS[event_class] = func
        logger.debug(f"Registered webhook handler for {event_class.__name__}")
        return func

    return decorator


def dispatch_event(event: RoutedEvent, context: HandlerContext) -> HandlerResult:
    """
    Run the handler registered for ``event``.

    Events without a handler are ignored rather than failed: the provider
    sends many event types this service has no use for.
    """
    handler = WEBHOOK_HANDLERS.get(type(event))
    if handler is None:
        logger.info(
            f"No handler for {type(event).__name__}",
            extra={"event_id": context.event_id},
        )
        return HandlerResult(outcome=WebhookOutcome.IGNORED, detail="no handler")
    return handler(event, context)


# =============================================================================
# Payment & Refund Handlers
# =============================================================================


@register_handler(PaymentSucceeded)
@register_handler(PaymentFailed)
@register_handler(RefundCompleted)
@register_handler(RefundFailed)
def handle_transition(event: RoutedEvent, context: HandlerContext) -> HandlerResult:
    """Apply a payment or refund event through the transition engine."""
    result = TransitionEngine.apply(event, event_id=context.event_id, actor=context.actor)
    return HandlerResult(
        outcome=WebhookOutcome.APPLIED,
        side_effects=result.side_effects,
    )


# =============================================================================
# Customer Handler
# =============================================================================


@register_handler(CustomerUpserted)
def handle_customer_upserted(event: CustomerUpserted, context: HandlerContext) -> HandlerResult:
    customer, created = ProviderCustomer.objects.update_or_create(
        provider=context.provider,
        provider_customer_id=event.provider_customer_id,
        defaults={
            "email": event.email,
            "given_name": event.given_name,
            "family_name": event.family_name,
        },
    )
    logger.info(
        "Provider customer created" if created else "Provider customer updated",
        extra={
            "event_id": context.event_id,
            "provider_customer_id": event.provider_customer_id,
        },
    )
    return HandlerResult(outcome=WebhookOutcome.APPLIED)


@register_handler(Unhandled)
def handle_unhandled(event: Unhandled, context: HandlerContext) -> HandlerResult:
    logger.info(
        f"Ignoring webhook event type: {event.event_type}",
        extra={"event_id": context.event_id, "reason": event.reason},
    )
    return HandlerResult(outcome=WebhookOutcome.IGNORED, detail=event.reason)
