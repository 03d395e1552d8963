"""
Commission model: the platform's revenue share of a payment.

Exactly one Commission exists per Payment. The amounts move only through
``payments.services.commissions``; ``hotel_earnings`` is recomputed on
every save so that commission_amount + hotel_earnings == base_amount.

Usage:
    from payments.services.commissions import create_commission, earn_commission

    commission = create_commission(booking, payment, payment.amount)
    earn_commission(payment)
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import CommissionStatus


class Commission(UUIDPrimaryKeyMixin, BaseModel):
    """
    Platform revenue share of one payment.

    State Flow:
        PENDING -> EARNED -> PAID
        EARNED -> REVERSED

    Fields:
        booking/payment: What the commission was taken on
        base_amount: Amount the rate applies to (the payment amount)
        rate: Fraction of base_amount kept by the platform
        commission_amount: Current residual commission
        earned_amount: Commission at the time it was earned
        reversed_amount: Total reversed by refunds
        hotel_earnings: base_amount - commission_amount
        payout_reference/paid_at: Set when included in a payout batch
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="commissions",
        help_text="Booking the commission belongs to",
    )

    payment = models.OneToOneField(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="commission",
        help_text="Payment the commission is taken on",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    base_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount the commission rate applies to",
    )

    rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        help_text="Commission rate used for this row (0.0500 = 5%)",
    )

    commission_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Current residual commission",
    )

    earned_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Commission amount when it was earned",
    )

    reversed_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Commission reversed by refunds",
    )

    hotel_earnings = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Base amount minus commission (computed on save)",
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
        default=CommissionStatus.PENDING,
        choices=CommissionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current commission state (managed by FSM)",
    )

    earned_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the commission was earned",
    )

    reversed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the commission was fully reversed",
    )

    payout_reference = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Payout batch reference",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the commission was paid out",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Reversal history and other context",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Commission"
        verbose_name_plural = "Commissions"
        indexes = [
            models.Index(fields=["status", "currency"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(commission_amount__gte=0),
                name="commission_amount_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(rate__gte=0) & models.Q(rate__lte=1),
                name="commission_rate_between_zero_and_one",
            ),
        ]

    def __str__(self) -> str:
        return f"Commission({self.payment_id}, {self.status}, {self.commission_amount} {self.currency})"

    def save(self, *args, **kwargs):
        self.hotel_earnings = self.base_amount - self.commission_amount
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "hotel_earnings" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "hotel_earnings"]
        super().save(*args, **kwargs)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=CommissionStatus.PENDING,
        target=CommissionStatus.EARNED,
    )
    def earn(self):
        """
        The payment behind this commission succeeded.

        Transition: PENDING -> EARNED
        """
        self.earned_amount = self.commission_amount
        self.earned_at = timezone.now()

    @transition(
        field=status,
        source=CommissionStatus.EARNED,
        target=CommissionStatus.REVERSED,
    )
    def reverse_fully(self):
        """
        Refunds removed the whole residual commission.

        Transition: EARNED -> REVERSED
        """
        self.reversed_amount += self.commission_amount
        self.commission_amount = Decimal("0.00")
        self.reversed_at = timezone.now()
