"""
Refund model for money returned against a succeeded payment.

One Payment can have several Refunds (partial refunds). Refund rows are
created by the transition engine when the provider reports a refund, and
only against a Payment that has succeeded.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import RefundStatus


class Refund(UUIDPrimaryKeyMixin, BaseModel):
    """
    Money returned to the guest from a succeeded payment.

    State Flow:
        PENDING -> SUCCEEDED
        PENDING -> FAILED

    Fields:
        payment: Payment being refunded
        booking: Booking of that payment (denormalized for audit queries)
        amount/currency: Refunded amount
        status: Current FSM state
        reason: Refund reason as reported by the provider
        provider_transaction_id: Provider refund id (unique)
        processed_at: When the provider reported a final result
        failure_reason: Provider status when the refund failed
        metadata: Provider payload excerpts

    Note:
        The sum of succeeded refunds never exceeds the payment amount; the
        transition engine checks this before a refund succeeds.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Payment being refunded",
    )

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Booking of the refunded payment",
    )

    # ==========================================================================
    # Amount & State
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Refunded amount",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    status = FSMField(
        default=RefundStatus.PENDING,
        choices=RefundStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current refund state (managed by FSM)",
    )

    reason = models.TextField(
        blank=True,
        default="",
        help_text="Refund reason",
    )

    # ==========================================================================
    # Provider Integration
    # ==========================================================================

    provider_transaction_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider refund id",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the provider reported success or failure",
    )

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Why the refund failed",
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
        verbose_name = "Refund"
        verbose_name_plural = "Refunds"
        indexes = [
            models.Index(fields=["payment", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="refund_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Refund({self.provider_transaction_id}, {self.status}, {self.amount} {self.currency})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=RefundStatus.PENDING,
        target=RefundStatus.SUCCEEDED,
    )
    def mark_succeeded(self):
        """Transition: PENDING -> SUCCEEDED"""
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=RefundStatus.PENDING,
        target=RefundStatus.FAILED,
    )
    def mark_failed(self, reason: str = ""):
        """Transition: PENDING -> FAILED"""
        self.processed_at = timezone.now()
        self.failure_reason = reason or ""
