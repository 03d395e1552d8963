"""
Tests for Booking and BookingStatusHistory.

Covers:
- FSM transitions and the payment_status they set
- Terminal states rejecting every transition
- Append-only history rows
"""

import pytest
from django_fsm import TransitionNotAllowed

from core.exceptions import ConflictError

from bookings.models import BookingStatusHistory
from bookings.states import (
    BOOKING_TRANSITIONS,
    TERMINAL_BOOKING_STATUSES,
    BookingPaymentStatus,
    BookingStatus,
)
from bookings.tests.factories import BookingFactory, BookingStatusHistoryFactory


@pytest.mark.django_db
class TestBookingTransitions:
    """Test Booking FSM transitions."""

    def test_confirm_payment_from_pending(self):
        """Should confirm and mark paid."""
        booking = BookingFactory()

        booking.confirm_payment()

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_status == BookingPaymentStatus.PAID

    def test_confirm_payment_after_failed_attempt(self):
        """Should allow a retry payment to confirm a payment_failed booking."""
        booking = BookingFactory(
            status=BookingStatus.PAYMENT_FAILED,
            payment_status=BookingPaymentStatus.FAILED,
        )

        booking.confirm_payment()

        assert booking.status == BookingStatus.CONFIRMED

    def test_fail_payment_is_repeatable(self):
        """Should stay payment_failed when another attempt fails."""
        booking = BookingFactory()
        booking.fail_payment()
        booking.fail_payment()

        assert booking.status == BookingStatus.PAYMENT_FAILED
        assert booking.payment_status == BookingPaymentStatus.FAILED

    def test_refund_sets_cancellation_fields(self):
        """Should record when and why the booking was refunded."""
        booking = BookingFactory(status=BookingStatus.CONFIRMED)

        booking.refund(reason="Guest cancelled")

        assert booking.status == BookingStatus.REFUNDED
        assert booking.payment_status == BookingPaymentStatus.REFUNDED
        assert booking.cancelled_at is not None
        assert booking.cancellation_reason == "Guest cancelled"

    def test_refund_requires_confirmed(self):
        """Should not refund a checked-in booking through the FSM."""
        booking = BookingFactory(status=BookingStatus.CHECKED_IN)

        with pytest.raises(TransitionNotAllowed):
            booking.refund()

    def test_stay_lifecycle(self):
        booking = BookingFactory(status=BookingStatus.CONFIRMED)

        booking.start_stay()
        booking.end_stay()

        assert booking.status == BookingStatus.CHECKED_OUT

    def test_cancel_from_pending(self):
        booking = BookingFactory()

        booking.cancel(reason="No show")

        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancellation_reason == "No show"

    @pytest.mark.parametrize("status", sorted(TERMINAL_BOOKING_STATUSES))
    @pytest.mark.parametrize(
        "method", ["confirm_payment", "fail_payment", "refund", "cancel", "start_stay", "end_stay"]
    )
    def test_terminal_states_reject_transitions(self, status, method):
        """Should never leave a terminal state."""
        booking = BookingFactory(status=status)

        with pytest.raises(TransitionNotAllowed):
            getattr(booking, method)()

    def test_status_cannot_be_assigned_directly(self):
        """Should protect status from direct assignment."""
        booking = BookingFactory()

        with pytest.raises(AttributeError):
            booking.status = BookingStatus.CONFIRMED

    def test_transition_table_never_leaves_terminal_states(self):
        """Should not list a terminal state as a source."""
        for rule in BOOKING_TRANSITIONS.values():
            assert not set(rule.sources) & TERMINAL_BOOKING_STATUSES


@pytest.mark.django_db
class TestBookingStatusHistory:
    """Test append-only history rows."""

    def test_append_history_records_transition(self):
        """Should store previous and current status with actor and metadata."""
        booking = BookingFactory()
        previous = booking.status
        booking.confirm_payment()
        booking.save()

        row = booking.append_history(
            previous,
            "Payment completed successfully",
            actor="webhook:square",
            metadata={"event_id": "evt_1"},
        )

        assert row.previous_status == BookingStatus.PENDING
        assert row.new_status == BookingStatus.CONFIRMED
        assert row.actor == "webhook:square"
        assert row.metadata == {"event_id": "evt_1"}
        assert list(booking.status_history.all()) == [row]

    def test_update_is_rejected(self):
        """Should refuse to save an existing history row."""
        row = BookingStatusHistoryFactory()
        row.reason = "rewritten"

        with pytest.raises(ConflictError) as exc_info:
            row.save()

        assert exc_info.value.error_code == "APPEND_ONLY"
        assert BookingStatusHistory.objects.get(pk=row.pk).reason != "rewritten"

    def test_delete_is_rejected(self):
        row = BookingStatusHistoryFactory()

        with pytest.raises(ConflictError):
            row.delete()

        assert BookingStatusHistory.objects.filter(pk=row.pk).exists()
