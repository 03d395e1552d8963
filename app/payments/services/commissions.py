"""
Commission ledger: creating, earning, reversing and paying out commissions.

All amounts are Decimal with 2 places, rounded ROUND_HALF_UP. Every write
goes through ``Commission.save`` so ``hotel_earnings`` stays equal to
``base_amount - commission_amount``; the one exception is the payout
batch update, which leaves the amounts untouched.

Reversal rules:
    - No refund amount, or a refund covering the whole base: full reversal,
      status REVERSED, commission_amount 0.
    - Partial refund: reverse round(earned_amount * refund / base, 2),
      clamped to what remains. Status stays EARNED unless nothing remains.

Each refund is reversed once because each refund event passes the event
ledger once.

Usage:
    from payments.services.commissions import create_commission, reverse_commission

    create_commission(booking, payment, payment.amount)
    reverse_commission(payment, Decimal("40.00"))
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Iterable

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from payments.exceptions import PaymentValidationError, TransitionError
from payments.models import Commission
from payments.state_machines import CommissionStatus

if TYPE_CHECKING:
    from bookings.models import Booking
    from payments.models import Payment


logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Round to 2 decimal places, half up."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def default_rate() -> Decimal:
    return Decimal(str(settings.COMMISSION_DEFAULT_RATE))


def _validate_rate(rate: Decimal | str | float | None) -> Decimal:
    if rate is None:
        return default_rate()
    try:
        value = Decimal(str(rate))
    except InvalidOperation as exc:
        raise PaymentValidationError(
            "Commission rate is not a number",
            details={"rate": str(rate)},
        ) from exc
    if value < 0 or value > 1:
        raise PaymentValidationError(
            "Commission rate must be between 0 and 1",
            details={"rate": str(value)},
        )
    return value


# =============================================================================
# Create / Earn
# =============================================================================


def create_commission(
    booking: Booking,
    payment: Payment,
    base_amount: Decimal,
    rate: Decimal | str | None = None,
) -> Commission:
    """
    Create the pending commission for a payment.

    Args:
        booking: Booking the payment belongs to
        payment: Payment the commission is taken on
        base_amount: Amount the rate applies to
        rate: Override for COMMISSION_DEFAULT_RATE; persisted on the row

    Raises:
        PaymentValidationError: Non-positive base or rate outside [0, 1]
    """
    base = to_money(base_amount)
    if base <= 0:
        raise PaymentValidationError(
            "Commission base amount must be positive",
            details={"base_amount": str(base)},
        )
    used_rate = _validate_rate(rate)

    commission = Commission.objects.create(
        booking=booking,
        payment=payment,
        base_amount=base,
        rate=used_rate,
        commission_amount=to_money(base * used_rate),
        currency=payment.currency,
    )
    logger.info(
        "Commission created",
        extra={
            "commission_id": str(commission.id),
            "payment_id": str(payment.id),
            "rate": str(used_rate),
            "commission_amount": str(commission.commission_amount),
        },
    )
    return commission


def earn_commission(payment: Payment) -> Commission:
    """
    Move a payment's commission from PENDING to EARNED.

    A payment recorded without a commission gets one created at the
    default rate first.
    """
    with transaction.atomic():
        commission = (
            Commission.objects.select_for_update().filter(payment=payment).first()
        )
        if commission is None:
            commission = create_commission(payment.booking, payment, payment.amount)
        if commission.status != CommissionStatus.PENDING:
            raise TransitionError(
                "Commission cannot be earned from its current state",
                error_code="COMMISSION_NOT_PENDING",
                details={
                    "commission_id": str(commission.id),
                    "status": commission.status,
                },
            )
        commission.earn()
        commission.save()

    logger.info(
        "Commission earned",
        extra={
            "commission_id": str(commission.id),
            "payment_id": str(payment.id),
            "earned_amount": str(commission.earned_amount),
        },
    )
    return commission


# =============================================================================
# Reverse
# =============================================================================


def reverse_commission(
    payment: Payment,
    refund_amount: Decimal | None = None,
) -> Commission:
    """
    Reverse commission for a refund against ``payment``.

    Raises:
        TransitionError: No commission, or it is not EARNED
    """
    with transaction.atomic():
        commission = (
            Commission.objects.select_for_update().filter(payment=payment).first()
        )
        if commission is None or commission.status != CommissionStatus.EARNED:
            raise TransitionError(
                "Commission cannot be reversed from its current state",
                error_code="COMMISSION_NOT_EARNED",
                details={
                    "payment_id": str(payment.id),
                    "status": commission.status if commission else None,
                },
            )

        before = commission.commission_amount
        if refund_amount is None or to_money(refund_amount) >= commission.base_amount:
            commission.reverse_fully()
        else:
            refund = to_money(refund_amount)
            share = to_money(commission.earned_amount * refund / commission.base_amount)
            reversal = min(share, commission.commission_amount)
            commission.commission_amount -= reversal
            commission.reversed_amount += reversal
            if commission.commission_amount == ZERO:
                commission.reverse_fully()

        reversed_now = before - commission.commission_amount
        history = list(commission.metadata.get("reversals", []))
        history.append(
            {
                "refund_amount": str(to_money(refund_amount)) if refund_amount is not None else None,
                "reversed": str(reversed_now),
                "at": timezone.now().isoformat(),
            }
        )
        commission.metadata = {**commission.metadata, "reversals": history}
        commission.save()

    logger.info(
        "Commission reversed",
        extra={
            "commission_id": str(commission.id),
            "payment_id": str(payment.id),
            "reversed": str(reversed_now),
            "remaining": str(commission.commission_amount),
            "status": commission.status,
        },
    )
    return commission


# =============================================================================
# Payout & Reporting
# =============================================================================


def mark_commissions_paid(
    commission_ids: Iterable[Any],
    payout_reference: str,
) -> int:
    """
    Mark a batch of EARNED commissions as PAID in one UPDATE.

    Commissions in any other state are left alone. Returns the number of
    rows updated.
    """
    ids = list(commission_ids)
    if not ids:
        return 0
    if not payout_reference:
        raise PaymentValidationError("A payout reference is required")

    now = timezone.now()
    updated = Commission.objects.filter(
        id__in=ids,
        status=CommissionStatus.EARNED,
    ).update(
        status=CommissionStatus.PAID,
        payout_reference=payout_reference,
        paid_at=now,
        updated_at=now,
    )
    logger.info(
        "Commissions marked paid",
        extra={
            "payout_reference": payout_reference,
            "requested": len(ids),
            "updated": updated,
        },
    )
    return updated


def summarize(currency: str | None = None) -> dict[str, Any]:
    """
    Commission totals for the reporting API.

    Returns:
        {"currency", "earned", "reversed", "paid", "pending", "count"} with
        Decimal totals; ``earned`` is the residual of EARNED commissions.
    """
    queryset = Commission.objects.all()
    if currency:
        queryset = queryset.filter(currency=currency.upper())

    totals = {
        row["status"]: row
        for row in queryset.order_by().values("status").annotate(
            residual=Sum("commission_amount"),
            count=Count("id"),
        )
    }
    reversed_total = queryset.aggregate(total=Sum("reversed_amount"))["total"]

    def residual(status: str) -> Decimal:
        row = totals.get(status)
        return to_money(row["residual"]) if row and row["residual"] is not None else ZERO

    return {
        "currency": currency.upper() if currency else None,
        "pending": residual(CommissionStatus.PENDING),
        "earned": residual(CommissionStatus.EARNED),
        "paid": residual(CommissionStatus.PAID),
        "reversed": to_money(reversed_total) if reversed_total is not None else ZERO,
        "count": sum(row["count"] for row in totals.values()),
    }
