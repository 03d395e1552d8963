"""
State transition engine for booking, payment, refund and commission.

Split in two:

``plan_transition(snapshot, event)``
    Pure. Looks at a TransitionSnapshot (the current states and amounts)
    and a routed webhook event, and either returns a TransitionPlan or
    raises TransitionError. Nothing is mutated, so every
    (booking state x event) combination can be tested without a database.

``TransitionEngine.apply(event, ...)``
    Locks the payment, its booking and commission with
    ``select_for_update``, builds the snapshot, plans, and applies every
    mutation plus the history row inside one ``transaction.atomic()``.

Rules:
    PaymentSucceeded  booking {pending, payment_failed} -> confirmed, paid
                      payment pending -> succeeded, commission earned
    PaymentFailed     booking {pending, payment_failed} -> payment_failed
                      payment pending -> failed
    RefundCompleted   payment must be succeeded; refunds may not exceed it
                      full:    booking confirmed -> refunded, payment refunded,
                               commission reversed
                      partial: booking {confirmed, checked_in} unchanged,
                               commission partially reversed
    RefundFailed      payment must be succeeded; refund -> failed only
    Any event against a terminal booking (cancelled, checked_out, refunded)
    raises TransitionError.

Usage:
    from payments.services.transitions import TransitionEngine

    result = TransitionEngine.apply(routed_event, event_id="evt_1", actor="webhook:square")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db import transaction

from core.services import BaseService

from bookings.models import Booking
from bookings.states import (
    BOOKING_TRANSITIONS,
    CONFIRM_PAYMENT,
    FAIL_PAYMENT,
    PARTIAL_REFUND,
    REFUND,
    TERMINAL_BOOKING_STATUSES,
    BookingPaymentStatus,
)
from payments.exceptions import TransitionError
from payments.models import Commission, Payment, Refund
from payments.services.commissions import earn_commission, reverse_commission, to_money
from payments.side_effects import (
    BOOKING_CONFIRMED,
    PAYMENT_FAILED,
    REFUND_CONFIRMED,
    SideEffect,
)
from payments.state_machines import CommissionStatus, PaymentStatus, RefundStatus
from payments.webhooks.router import (
    PaymentFailed,
    PaymentSucceeded,
    RefundCompleted,
    RefundFailed,
)

if TYPE_CHECKING:
    from payments.webhooks.router import RoutedEvent


logger = logging.getLogger(__name__)


# =============================================================================
# Actions
# =============================================================================

SUCCEED = "succeed"
FAIL = "fail"
MARK_REFUNDED = "mark_refunded"

EARN = "earn"
REVERSE_FULL = "reverse_full"
REVERSE_PARTIAL = "reverse_partial"


# =============================================================================
# Snapshot & Plan
# =============================================================================


@dataclass(frozen=True)
class TransitionSnapshot:
    """
    Current state of everything an event can touch.

    ``refund_status``/``refund_amount`` describe an existing Refund row with
    the event's provider refund id, if there is one.
    """

    booking_status: str
    booking_payment_status: str
    payment_status: str
    payment_amount: Decimal
    payment_currency: str
    refunded_amount: Decimal = Decimal("0.00")
    commission_status: str | None = None
    refund_status: str | None = None
    refund_amount: Decimal | None = None


@dataclass(frozen=True)
class TransitionPlan:
    """Everything ``TransitionEngine`` will change for one event."""

    booking_transition: str | None
    new_booking_status: str
    new_booking_payment_status: str
    payment_action: str | None = None
    refund_action: str | None = None
    commission_action: str | None = None
    history_reason: str | None = None
    side_effects: tuple[str, ...] = ()
    is_full_refund: bool = False


@dataclass
class TransitionResult:
    """Entities after an applied transition, plus effects to send on commit."""

    booking: Booking
    payment: Payment
    plan: TransitionPlan
    refund: Refund | None = None
    commission: Commission | None = None
    side_effects: list[SideEffect] = field(default_factory=list)


# =============================================================================
# Planner
# =============================================================================


def _reject(message: str, error_code: str, snapshot: TransitionSnapshot, **details: Any):
    raise TransitionError(
        message,
        error_code=error_code,
        details={
            "booking_status": snapshot.booking_status,
            "payment_status": snapshot.payment_status,
            **details,
        },
    )


def _require_booking_rule(name: str, snapshot: TransitionSnapshot) -> str | None:
    rule = BOOKING_TRANSITIONS[name]
    if not rule.allows(snapshot.booking_status):
        _reject(
            f"Booking in status '{snapshot.booking_status}' does not allow {name}",
            "BOOKING_STATE_CONFLICT",
            snapshot,
            transition=name,
        )
    return rule.target


def plan_transition(snapshot: TransitionSnapshot, event: RoutedEvent) -> TransitionPlan:
    """
    Decide what ``event`` does to the entities in ``snapshot``.

    Raises:
        TransitionError: The event is valid but cannot be applied
    """
    if snapshot.booking_status in TERMINAL_BOOKING_STATUSES:
        _reject(
            f"Booking is {snapshot.booking_status}",
            "BOOKING_TERMINAL",
            snapshot,
        )

    if isinstance(event, PaymentSucceeded):
        return _plan_payment_succeeded(snapshot, event)
    if isinstance(event, PaymentFailed):
        return _plan_payment_failed(snapshot, event)
    if isinstance(event, RefundCompleted):
        return _plan_refund_completed(snapshot, event)
    if isinstance(event, RefundFailed):
        return _plan_refund_failed(snapshot, event)

    raise TypeError(f"No transition for {type(event).__name__}")


def _plan_payment_succeeded(
    snapshot: TransitionSnapshot, event: PaymentSucceeded
) -> TransitionPlan:
    if snapshot.payment_status != PaymentStatus.PENDING:
        _reject("Payment is not pending", "PAYMENT_NOT_PENDING", snapshot)
    if event.currency != snapshot.payment_currency:
        _reject(
            "Payment currency does not match",
            "CURRENCY_MISMATCH",
            snapshot,
            expected=snapshot.payment_currency,
            received=event.currency,
        )
    if event.amount != snapshot.payment_amount:
        _reject(
            "Payment amount does not match",
            "AMOUNT_MISMATCH",
            snapshot,
            expected=str(snapshot.payment_amount),
            received=str(event.amount),
        )
    target = _require_booking_rule(CONFIRM_PAYMENT, snapshot)

    return TransitionPlan(
        booking_transition=CONFIRM_PAYMENT,
        new_booking_status=target,
        new_booking_payment_status=BookingPaymentStatus.PAID,
        payment_action=SUCCEED,
        commission_action=EARN,
        history_reason="Payment completed successfully",
        side_effects=(BOOKING_CONFIRMED,),
    )


def _plan_payment_failed(snapshot: TransitionSnapshot, event: PaymentFailed) -> TransitionPlan:
    if snapshot.payment_status != PaymentStatus.PENDING:
        _reject("Payment is not pending", "PAYMENT_NOT_PENDING", snapshot)
    target = _require_booking_rule(FAIL_PAYMENT, snapshot)

    return TransitionPlan(
        booking_transition=FAIL_PAYMENT,
        new_booking_status=target,
        new_booking_payment_status=BookingPaymentStatus.FAILED,
        payment_action=FAIL,
        history_reason=f"Payment failed: {event.error_code}",
        side_effects=(PAYMENT_FAILED,),
    )


def _check_refund_row(snapshot: TransitionSnapshot, amount: Decimal | None) -> None:
    if snapshot.refund_status is not None and snapshot.refund_status != RefundStatus.PENDING:
        _reject(
            f"Refund is already {snapshot.refund_status}",
            "REFUND_ALREADY_FINAL",
            snapshot,
            refund_status=snapshot.refund_status,
        )
    if (
        amount is not None
        and snapshot.refund_amount is not None
        and amount != snapshot.refund_amount
    ):
        _reject(
            "Refund amount does not match the recorded refund",
            "AMOUNT_MISMATCH",
            snapshot,
            expected=str(snapshot.refund_amount),
            received=str(amount),
        )


def _plan_refund_completed(
    snapshot: TransitionSnapshot, event: RefundCompleted
) -> TransitionPlan:
    if snapshot.payment_status != PaymentStatus.SUCCEEDED:
        _reject("Only a succeeded payment can be refunded", "PAYMENT_NOT_REFUNDABLE", snapshot)
    _check_refund_row(snapshot, event.amount)
    if event.currency != snapshot.payment_currency:
        _reject(
            "Refund currency does not match the payment",
            "CURRENCY_MISMATCH",
            snapshot,
            expected=snapshot.payment_currency,
            received=event.currency,
        )

    total = snapshot.refunded_amount + event.amount
    if total > snapshot.payment_amount:
        _reject(
            "Refunds would exceed the payment amount",
            "REFUND_EXCEEDS_PAYMENT",
            snapshot,
            payment_amount=str(snapshot.payment_amount),
            already_refunded=str(snapshot.refunded_amount),
            requested=str(event.amount),
        )

    commission_action = None
    if snapshot.commission_status == CommissionStatus.EARNED:
        commission_action = REVERSE_FULL if total == snapshot.payment_amount else REVERSE_PARTIAL

    reason = event.reason or "Refund requested"
    if total == snapshot.payment_amount:
        target = _require_booking_rule(REFUND, snapshot)
        return TransitionPlan(
            booking_transition=REFUND,
            new_booking_status=target,
            new_booking_payment_status=BookingPaymentStatus.REFUNDED,
            payment_action=MARK_REFUNDED,
            refund_action=SUCCEED,
            commission_action=commission_action,
            history_reason=f"Refund processed: {reason}",
            side_effects=(REFUND_CONFIRMED,),
            is_full_refund=True,
        )

    _require_booking_rule(PARTIAL_REFUND, snapshot)
    return TransitionPlan(
        booking_transition=None,
        new_booking_status=snapshot.booking_status,
        new_booking_payment_status=snapshot.booking_payment_status,
        refund_action=SUCCEED,
        commission_action=commission_action,
        history_reason=(
            f"Partial refund processed: {event.amount} {event.currency} ({reason})"
        ),
        side_effects=(REFUND_CONFIRMED,),
    )


def _plan_refund_failed(snapshot: TransitionSnapshot, event: RefundFailed) -> TransitionPlan:
    if snapshot.payment_status != PaymentStatus.SUCCEEDED:
        _reject("Only a succeeded payment can be refunded", "PAYMENT_NOT_REFUNDABLE", snapshot)
    _check_refund_row(snapshot, event.amount)
    if snapshot.refund_status is None and event.amount is None:
        _reject("Refund amount is unknown", "REFUND_AMOUNT_UNKNOWN", snapshot)

    return TransitionPlan(
        booking_transition=None,
        new_booking_status=snapshot.booking_status,
        new_booking_payment_status=snapshot.booking_payment_status,
        refund_action=FAIL,
    )


# =============================================================================
# Engine
# =============================================================================


class TransitionEngine(BaseService):
    """
    Applies routed payment and refund events to the database.

    Every mutation of one event happens inside a single
    ``transaction.atomic()`` block; a TransitionError is raised before the
    first write.
    """

    @classmethod
    def apply(
        cls,
        event: RoutedEvent,
        *,
        event_id: str = "",
        actor: str = "system",
    ) -> TransitionResult:
        """
        Apply ``event`` and return the updated entities.

        Raises:
            TransitionError: Unknown payment or inapplicable event
        """
        if isinstance(event, PaymentSucceeded):
            return cls.apply_payment_succeeded(event, event_id=event_id, actor=actor)
        if isinstance(event, PaymentFailed):
            return cls.apply_payment_failed(event, event_id=event_id, actor=actor)
        if isinstance(event, RefundCompleted):
            return cls.apply_refund_completed(event, event_id=event_id, actor=actor)
        if isinstance(event, RefundFailed):
            return cls.apply_refund_failed(event, event_id=event_id, actor=actor)
        raise TypeError(f"No transition for {type(event).__name__}")

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def _lock(
        cls, provider_transaction_id: str, provider_refund_id: str | None = None
    ) -> tuple[Payment, Booking, Commission | None, Refund | None]:
        try:
            payment = Payment.objects.select_for_update().get(
                provider_transaction_id=provider_transaction_id
            )
        except Payment.DoesNotExist:
            raise TransitionError(
                "No payment matches the event",
                error_code="UNKNOWN_PAYMENT",
                details={"provider_transaction_id": provider_transaction_id},
            ) from None

        booking = Booking.objects.select_for_update().get(pk=payment.booking_id)
        commission = Commission.objects.select_for_update().filter(payment=payment).first()
        refund = None
        if provider_refund_id:
            refund = (
                Refund.objects.select_for_update()
                .filter(provider_transaction_id=provider_refund_id)
                .first()
            )
            if refund is not None and refund.payment_id != payment.id:
                raise TransitionError(
                    "Refund belongs to a different payment",
                    error_code="REFUND_PAYMENT_MISMATCH",
                    details={"provider_refund_id": provider_refund_id},
                )
        return payment, booking, commission, refund

    @staticmethod
    def _snapshot(
        payment: Payment,
        booking: Booking,
        commission: Commission | None,
        refund: Refund | None,
    ) -> TransitionSnapshot:
        return TransitionSnapshot(
            booking_status=booking.status,
            booking_payment_status=booking.payment_status,
            payment_status=payment.status,
            payment_amount=payment.amount,
            payment_currency=payment.currency,
            refunded_amount=payment.refunded_amount,
            commission_status=commission.status if commission else None,
            refund_status=refund.status if refund else None,
            refund_amount=refund.amount if refund else None,
        )

    @staticmethod
    def _effects(plan: TransitionPlan, booking: Booking, context: dict[str, Any]) -> list[SideEffect]:
        return [
            SideEffect(kind=kind, booking_id=str(booking.id), context=context)
            for kind in plan.side_effects
        ]

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    @classmethod
    def apply_payment_succeeded(
        cls, event: PaymentSucceeded, *, event_id: str = "", actor: str = "system"
    ) -> TransitionResult:
        with transaction.atomic():
            payment, booking, commission, _ = cls._lock(event.provider_transaction_id)
            plan = plan_transition(cls._snapshot(payment, booking, commission, None), event)

            previous = booking.status
            payment.mark_succeeded()
            if event.order_id:
                payment.provider_order_id = event.order_id
            payment.save()

            booking.confirm_payment()
            booking.save()

            commission = earn_commission(payment)
            booking.append_history(
                previous,
                plan.history_reason,
                actor=actor,
                metadata={
                    "event_id": event_id,
                    "payment_id": event.provider_transaction_id,
                    "amount": str(event.amount),
                    "currency": event.currency,
                },
            )

        cls.get_logger().info(
            "Payment succeeded",
            extra={
                "event_id": event_id,
                "booking_id": str(booking.id),
                "payment_id": event.provider_transaction_id,
            },
        )
        context = {
            "amount": str(payment.amount),
            "currency": payment.currency,
            "payment_id": event.provider_transaction_id,
        }
        return TransitionResult(
            booking=booking,
            payment=payment,
            plan=plan,
            commission=commission,
            side_effects=cls._effects(plan, booking, context),
        )

    @classmethod
    def apply_payment_failed(
        cls, event: PaymentFailed, *, event_id: str = "", actor: str = "system"
    ) -> TransitionResult:
        with transaction.atomic():
            payment, booking, commission, _ = cls._lock(event.provider_transaction_id)
            plan = plan_transition(cls._snapshot(payment, booking, commission, None), event)

            previous = booking.status
            payment.mark_failed(event.error_code, event.error_message)
            payment.save()

            booking.fail_payment()
            booking.save()

            booking.append_history(
                previous,
                plan.history_reason,
                actor=actor,
                metadata={
                    "event_id": event_id,
                    "payment_id": event.provider_transaction_id,
                    "error_code": event.error_code,
                    "error_message": event.error_message,
                },
            )

        cls.get_logger().warning(
            "Payment failed",
            extra={
                "event_id": event_id,
                "booking_id": str(booking.id),
                "payment_id": event.provider_transaction_id,
                "error_code": event.error_code,
            },
        )
        context = {
            "error_code": event.error_code,
            "error_message": event.error_message or "Payment processing failed",
        }
        return TransitionResult(
            booking=booking,
            payment=payment,
            plan=plan,
            commission=commission,
            side_effects=cls._effects(plan, booking, context),
        )

    # -------------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------------

    @classmethod
    def apply_refund_completed(
        cls, event: RefundCompleted, *, event_id: str = "", actor: str = "system"
    ) -> TransitionResult:
        with transaction.atomic():
            payment, booking, commission, refund = cls._lock(
                event.provider_transaction_id, event.provider_refund_id
            )
            plan = plan_transition(
                cls._snapshot(payment, booking, commission, refund), event
            )

            previous = booking.status
            if refund is None:
                refund = Refund.objects.create(
                    payment=payment,
                    booking=booking,
                    amount=event.amount,
                    currency=event.currency,
                    reason=event.reason,
                    provider_transaction_id=event.provider_refund_id,
                )
            refund.mark_succeeded()
            refund.save()

            if plan.payment_action == MARK_REFUNDED:
                payment.mark_refunded()
                payment.save()

            if plan.booking_transition == REFUND:
                booking.refund(reason=event.reason or "Refund requested")
                booking.save()

            if plan.commission_action == REVERSE_FULL:
                commission = reverse_commission(payment)
            elif plan.commission_action == REVERSE_PARTIAL:
                commission = reverse_commission(payment, event.amount)
            elif commission is not None:
                cls.get_logger().warning(
                    "Commission not reversed for refund",
                    extra={
                        "event_id": event_id,
                        "commission_id": str(commission.id),
                        "commission_status": commission.status,
                    },
                )

            booking.append_history(
                previous,
                plan.history_reason,
                actor=actor,
                metadata={
                    "event_id": event_id,
                    "payment_id": event.provider_transaction_id,
                    "refund_id": event.provider_refund_id,
                    "amount": str(event.amount),
                    "currency": event.currency,
                    "full_refund": plan.is_full_refund,
                },
            )

        cls.get_logger().info(
            "Refund completed",
            extra={
                "event_id": event_id,
                "booking_id": str(booking.id),
                "refund_id": event.provider_refund_id,
                "full_refund": plan.is_full_refund,
            },
        )
        context = {
            "amount": str(to_money(event.amount)),
            "currency": event.currency,
            "reason": event.reason,
            "full_refund": plan.is_full_refund,
        }
        return TransitionResult(
            booking=booking,
            payment=payment,
            plan=plan,
            refund=refund,
            commission=commission,
            side_effects=cls._effects(plan, booking, context),
        )

    @classmethod
    def apply_refund_failed(
        cls, event: RefundFailed, *, event_id: str = "", actor: str = "system"
    ) -> TransitionResult:
        with transaction.atomic():
            payment, booking, commission, refund = cls._lock(
                event.provider_transaction_id, event.provider_refund_id
            )
            plan = plan_transition(
                cls._snapshot(payment, booking, commission, refund), event
            )

            if refund is None:
                refund = Refund.objects.create(
                    payment=payment,
                    booking=booking,
                    amount=event.amount,
                    currency=event.currency or payment.currency,
                    reason=event.reason,
                    provider_transaction_id=event.provider_refund_id,
                )
            refund.mark_failed(reason=event.status)
            refund.save()

        cls.get_logger().warning(
            "Refund failed",
            extra={
                "event_id": event_id,
                "booking_id": str(booking.id),
                "refund_id": event.provider_refund_id,
                "status": event.status,
            },
        )
        return TransitionResult(
            booking=booking,
            payment=payment,
            plan=plan,
            refund=refund,
            commission=commission,
        )
