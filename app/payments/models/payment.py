"""
Payment model for a single charge attempt against a booking.

A Payment is created when a charge attempt begins and is found again from
webhook events by its provider transaction id, never by amount or time.
A failed payment is never reopened: a new attempt creates a new Payment.

Usage:
    from payments.models import Payment

    payment = Payment.objects.select_for_update().get(
        provider_transaction_id="sq_pay_123",
    )
    payment.mark_succeeded()
    payment.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentStatus, RefundStatus


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    One charge attempt for a booking.

    State Flow:
        PENDING -> SUCCEEDED -> REFUNDED
        PENDING -> FAILED

    Fields:
        booking: Booking being paid for
        amount/currency: Amount charged
        status: Current FSM state
        provider: Payment provider key ("square")
        provider_transaction_id: Provider payment id, unique correlation key
        provider_order_id: Provider order id, informational
        error_code/error_message: Provider failure details
        processed_at: When the provider reported a final result
        metadata: Provider payload excerpts
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Booking this payment is for",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount charged",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current payment state (managed by FSM)",
    )

    # ==========================================================================
    # Provider Integration
    # ==========================================================================

    provider = models.CharField(
        max_length=32,
        default="square",
        help_text="Payment provider key",
    )

    provider_transaction_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider payment id - the only key used to match webhook events",
    )

    provider_order_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Provider order id, if the provider groups payments in orders",
    )

    # ==========================================================================
    # Result
    # ==========================================================================

    error_code = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Provider error code when the payment failed",
    )

    error_message = models.TextField(
        blank=True,
        default="",
        help_text="Provider error message when the payment failed",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the provider reported success or failure",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["booking", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.provider_transaction_id}, {self.status}, {self.amount} {self.currency})"

    @property
    def refunded_amount(self) -> Decimal:
        """Sum of succeeded refunds against this payment."""
        total = self.refunds.filter(status=RefundStatus.SUCCEEDED).aggregate(
            total=Sum("amount")
        )["total"]
        return total or Decimal("0.00")

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.SUCCEEDED,
    )
    def mark_succeeded(self):
        """
        The provider captured the payment.

        Transition: PENDING -> SUCCEEDED
        """
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self, error_code: str = "", error_message: str = ""):
        """
        The provider declined or cancelled the payment.

        Transition: PENDING -> FAILED
        """
        self.processed_at = timezone.now()
        self.error_code = error_code or ""
        self.error_message = error_message or ""

    @transition(
        field=status,
        source=PaymentStatus.SUCCEEDED,
        target=PaymentStatus.REFUNDED,
    )
    def mark_refunded(self):
        """
        Succeeded refunds now cover the full amount.

        Transition: SUCCEEDED -> REFUNDED
        """
        pass
