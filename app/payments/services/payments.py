"""
Charge-attempt bookkeeping.

Records a Payment (PENDING) and its pending Commission when a charge is
handed to the provider. The provider's answer arrives later as a webhook
and is applied by ``payments.services.transitions``.

Usage:
    from payments.services import PaymentService, RecordPaymentParams

    result = PaymentService.record_payment(
        RecordPaymentParams(
            booking=booking,
            provider_transaction_id="sq_pay_123",
        )
    )
    if result.success:
        payment = result.data
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError

from core.services import BaseService, ServiceResult

from bookings.states import TERMINAL_BOOKING_STATUSES
from payments.exceptions import PaymentValidationError
from payments.models import Payment
from payments.services.commissions import create_commission, to_money

if TYPE_CHECKING:
    from bookings.models import Booking


logger = logging.getLogger(__name__)


@dataclass
class RecordPaymentParams:
    """
    Parameters for recording a charge attempt.

    Attributes:
        booking: Booking being paid for
        provider_transaction_id: Provider payment id returned by the charge call
        amount: Defaults to the booking total
        currency: Defaults to the booking currency
        provider: Provider key
        order_id: Provider order id, if any
        commission_rate: Override for COMMISSION_DEFAULT_RATE
        metadata: Arbitrary key-value pairs
    """

    booking: Booking
    provider_transaction_id: str
    amount: Decimal | None = None
    currency: str | None = None
    provider: str = "square"
    order_id: str = ""
    commission_rate: Decimal | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class PaymentService(BaseService):
    """Creates Payment rows for new charge attempts."""

    @classmethod
    def record_payment(cls, params: RecordPaymentParams) -> ServiceResult[Payment]:
        """
        Record a pending payment and its pending commission.

        A failed earlier attempt stays failed; each retry is a new Payment
        with its own provider transaction id.

        Returns:
            ServiceResult with the Payment, or a failure for invalid input,
            terminal bookings and duplicate transaction ids.
        """
        booking = params.booking
        amount = to_money(params.amount if params.amount is not None else booking.total_amount)
        currency = (params.currency or booking.currency).upper()

        if not params.provider_transaction_id:
            return ServiceResult.failure(
                "A provider transaction id is required",
                error_code="PAYMENT_VALIDATION_ERROR",
            )
        if amount <= 0:
            return ServiceResult.failure(
                "Payment amount must be positive",
                error_code="PAYMENT_VALIDATION_ERROR",
            )
        if currency != booking.currency:
            return ServiceResult.failure(
                f"Currency {currency} does not match booking currency {booking.currency}",
                error_code="CURRENCY_MISMATCH",
            )
        if booking.status in TERMINAL_BOOKING_STATUSES:
            return ServiceResult.failure(
                f"Booking is {booking.status}",
                error_code="BOOKING_TERMINAL",
            )

        try:
            with cls.atomic():
                payment = Payment.objects.create(
                    booking=booking,
                    amount=amount,
                    currency=currency,
                    provider=params.provider,
                    provider_transaction_id=params.provider_transaction_id,
                    provider_order_id=params.order_id,
                    metadata=params.metadata,
                )
                create_commission(booking, payment, amount, params.commission_rate)
        except IntegrityError:
            logger.warning(
                "Duplicate provider transaction id",
                extra={"provider_transaction_id": params.provider_transaction_id},
            )
            return ServiceResult.failure(
                "A payment with this provider transaction id already exists",
                error_code="DUPLICATE_TRANSACTION",
            )
        except PaymentValidationError as e:
            return ServiceResult.from_exception(e)

        logger.info(
            "Payment recorded",
            extra={
                "booking_id": str(booking.id),
                "payment_id": str(payment.id),
                "provider_transaction_id": payment.provider_transaction_id,
                "amount": str(amount),
            },
        )
        return ServiceResult.success(payment)
