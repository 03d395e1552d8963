"""
Booking and BookingStatusHistory models.

A Booking's ``status`` is a django-fsm field: it only changes through the
transition methods below, whose sources come from ``bookings.states``.
``payment_status`` is set by those same transitions so the two fields
move together.

Usage:
    from bookings.models import Booking

    booking = Booking.objects.select_for_update().get(id=booking_id)
    previous = booking.status
    booking.confirm_payment()
    booking.save()
    booking.append_history(previous, "Payment completed successfully")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import AppendOnlyMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

from bookings.states import (
    CANCEL,
    CHECK_IN,
    CHECK_OUT,
    CONFIRM_PAYMENT,
    FAIL_PAYMENT,
    REFUND,
    BookingPaymentStatus,
    BookingStatus,
    sources_for,
)

if TYPE_CHECKING:
    from typing import Any


class Booking(UUIDPrimaryKeyMixin, BaseModel):
    """
    A guest's reservation of a hotel room for a stay.

    State Flow:
        PENDING -> CONFIRMED -> CHECKED_IN -> CHECKED_OUT
        PENDING -> PAYMENT_FAILED -> CONFIRMED
        CONFIRMED -> REFUNDED
        PENDING/CONFIRMED -> CANCELLED

    Fields:
        confirmation_number: Guest-facing booking reference
        guest_*: Contact details used for notifications
        hotel_id/room_id: References into the inventory subsystem
        check_in/check_out: Stay dates
        total_amount/currency: Amount charged for the stay
        status: Current FSM state
        payment_status: Derived payment position
        cancelled_at/cancellation_reason: Set on cancellation or full refund
    """

    # ==========================================================================
    # Identity & Guest
    # ==========================================================================

    confirmation_number = models.CharField(
        max_length=32,
        unique=True,
        help_text="Guest-facing booking reference",
    )

    guest_email = models.EmailField(
        help_text="Email address for booking notifications",
    )

    guest_first_name = models.CharField(
        max_length=100,
        help_text="Guest given name",
    )

    guest_last_name = models.CharField(
        max_length=100,
        help_text="Guest family name",
    )

    # ==========================================================================
    # Stay
    # ==========================================================================

    hotel_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Hotel identifier in the inventory subsystem",
    )

    room_id = models.CharField(
        max_length=64,
        help_text="Room or rate identifier in the inventory subsystem",
    )

    check_in = models.DateField(
        help_text="Arrival date",
    )

    check_out = models.DateField(
        help_text="Departure date",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Total amount charged for the stay",
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
        default=BookingStatus.PENDING,
        choices=BookingStatus.choices,
        db_index=True,
        protected=True,  # Only transition methods may change it
        help_text="Current booking state (managed by FSM)",
    )

    payment_status = models.CharField(
        max_length=20,
        choices=BookingPaymentStatus.choices,
        default=BookingPaymentStatus.PENDING,
        db_index=True,
        help_text="Payment position derived from payments and refunds",
    )

    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the booking was cancelled or fully refunded",
    )

    cancellation_reason = models.TextField(
        blank=True,
        default="",
        help_text="Why the booking was cancelled or refunded",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        indexes = [
            models.Index(fields=["hotel_id", "check_in"]),
            models.Index(fields=["status", "payment_status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name="booking_total_amount_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_check_out_after_check_in",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking({self.confirmation_number}, {self.status})"

    @property
    def guest_name(self) -> str:
        return f"{self.guest_first_name} {self.guest_last_name}".strip()

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=sources_for(CONFIRM_PAYMENT),
        target=BookingStatus.CONFIRMED,
    )
    def confirm_payment(self):
        """A payment for this booking succeeded."""
        self.payment_status = BookingPaymentStatus.PAID

    @transition(
        field=status,
        source=sources_for(FAIL_PAYMENT),
        target=BookingStatus.PAYMENT_FAILED,
    )
    def fail_payment(self):
        """The latest payment attempt for this booking failed."""
        self.payment_status = BookingPaymentStatus.FAILED

    @transition(
        field=status,
        source=sources_for(REFUND),
        target=BookingStatus.REFUNDED,
    )
    def refund(self, reason: str = ""):
        """Succeeded refunds now cover the full payment amount."""
        self.payment_status = BookingPaymentStatus.REFUNDED
        self.cancelled_at = timezone.now()
        self.cancellation_reason = reason

    @transition(
        field=status,
        source=sources_for(CANCEL),
        target=BookingStatus.CANCELLED,
    )
    def cancel(self, reason: str = ""):
        self.cancelled_at = timezone.now()
        self.cancellation_reason = reason

    @transition(
        field=status,
        source=sources_for(CHECK_IN),
        target=BookingStatus.CHECKED_IN,
    )
    def start_stay(self):
        pass

    @transition(
        field=status,
        source=sources_for(CHECK_OUT),
        target=BookingStatus.CHECKED_OUT,
    )
    def end_stay(self):
        pass

    # ==========================================================================
    # History
    # ==========================================================================

    def append_history(
        self,
        previous_status: str,
        reason: str,
        *,
        actor: str = "system",
        metadata: dict[str, Any] | None = None,
    ) -> BookingStatusHistory:
        """Append a history row recording a move to the current status."""
        return BookingStatusHistory.objects.create(
            booking=self,
            previous_status=previous_status,
            new_status=self.status,
            reason=reason,
            actor=actor,
            metadata=metadata or {},
        )


class BookingStatusHistory(UUIDPrimaryKeyMixin, AppendOnlyMixin, BaseModel):
    """
    Append-only record of booking status changes.

    One row per applied transition, including transitions that keep the
    status (a partial refund). Read by the admin/audit UI.

    Fields:
        booking: The booking that changed
        previous_status/new_status: Status before and after
        reason: Human-readable reason ("Payment completed successfully")
        actor: Who caused the change ("webhook:square", "system", a username)
        metadata: Event identifiers and amounts
    """

    booking = models.ForeignKey(
        Booking,
        on_delete=models.PROTECT,
        related_name="status_history",
        help_text="Booking whose status changed",
    )

    previous_status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        help_text="Status before the change",
    )

    new_status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        help_text="Status after the change",
    )

    reason = models.TextField(
        help_text="Why the status changed",
    )

    actor = models.CharField(
        max_length=100,
        default="system",
        help_text="Who or what caused the change",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Event identifiers, amounts and other context",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Booking Status History"
        verbose_name_plural = "Booking Status History"
        indexes = [
            models.Index(fields=["booking", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.booking_id}: {self.previous_status} -> {self.new_status}"
