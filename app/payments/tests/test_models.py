"""
Tests for payment models.

Covers:
- Payment, Refund and Commission FSM transitions
- Commission hotel_earnings bookkeeping
- Database constraints
- WebhookDelivery append-only rows
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from core.exceptions import ConflictError

from payments.models import Commission, Payment
from payments.state_machines import CommissionStatus, PaymentStatus, RefundStatus
from payments.tests.factories import (
    CommissionFactory,
    PaymentFactory,
    ProviderCustomerFactory,
    RefundFactory,
    SucceededPaymentFactory,
    WebhookDeliveryFactory,
    WebhookEventFactory,
)


@pytest.mark.django_db
class TestPaymentModel:
    """Test Payment transitions and properties."""

    def test_mark_succeeded_sets_processed_at(self):
        payment = PaymentFactory()

        payment.mark_succeeded()

        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.processed_at is not None

    def test_mark_failed_records_error(self):
        """Should keep the provider error code and message."""
        payment = PaymentFactory()

        payment.mark_failed("CARD_DECLINED", "Card was declined")

        assert payment.status == PaymentStatus.FAILED
        assert payment.error_code == "CARD_DECLINED"
        assert payment.error_message == "Card was declined"

    def test_cannot_succeed_twice(self):
        payment = SucceededPaymentFactory()

        with pytest.raises(TransitionNotAllowed):
            payment.mark_succeeded()

    def test_refund_requires_succeeded(self):
        """Should not mark a pending payment refunded."""
        payment = PaymentFactory()

        with pytest.raises(TransitionNotAllowed):
            payment.mark_refunded()

    def test_refunded_amount_counts_only_succeeded_refunds(self):
        """Should sum succeeded refunds and ignore pending or failed ones."""
        payment = SucceededPaymentFactory()
        RefundFactory(payment=payment, amount=Decimal("40.00"), status=RefundStatus.SUCCEEDED)
        RefundFactory(payment=payment, amount=Decimal("10.00"), status=RefundStatus.SUCCEEDED)
        RefundFactory(payment=payment, amount=Decimal("99.00"), status=RefundStatus.FAILED)
        RefundFactory(payment=payment, amount=Decimal("5.00"))

        assert payment.refunded_amount == Decimal("50.00")

    def test_refunded_amount_defaults_to_zero(self):
        assert PaymentFactory().refunded_amount == Decimal("0.00")

    def test_provider_transaction_id_is_unique(self):
        """Should reject a second payment with the same provider id."""
        PaymentFactory(provider_transaction_id="sq_pay_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            PaymentFactory(provider_transaction_id="sq_pay_dup")

    def test_amount_must_be_positive(self):
        with pytest.raises(IntegrityError), transaction.atomic():
            PaymentFactory(amount=Decimal("0.00"))


@pytest.mark.django_db
class TestRefundModel:
    def test_mark_succeeded(self):
        refund = RefundFactory()

        refund.mark_succeeded()

        assert refund.status == RefundStatus.SUCCEEDED
        assert refund.processed_at is not None

    def test_mark_failed_records_reason(self):
        refund = RefundFactory()

        refund.mark_failed(reason="REJECTED")

        assert refund.status == RefundStatus.FAILED
        assert refund.failure_reason == "REJECTED"

    def test_final_refund_cannot_change(self):
        """Should keep a succeeded refund succeeded."""
        refund = RefundFactory(status=RefundStatus.SUCCEEDED)

        with pytest.raises(TransitionNotAllowed):
            refund.mark_failed()


@pytest.mark.django_db
class TestCommissionModel:
    """Test Commission transitions and derived amounts."""

    def test_save_computes_hotel_earnings(self):
        """Should keep hotel_earnings equal to base minus commission."""
        commission = CommissionFactory(
            payment__amount=Decimal("200.00"),
            rate=Decimal("0.1500"),
        )

        assert commission.commission_amount == Decimal("30.00")
        assert commission.hotel_earnings == Decimal("170.00")

    def test_save_with_update_fields_includes_hotel_earnings(self):
        commission = CommissionFactory(payment__amount=Decimal("100.00"))
        commission.commission_amount = Decimal("4.00")

        commission.save(update_fields=["commission_amount"])

        stored = Commission.objects.get(pk=commission.pk)
        assert stored.hotel_earnings == Decimal("96.00")

    def test_earn_copies_commission_amount(self):
        commission = CommissionFactory(payment__amount=Decimal("100.00"))

        commission.earn()

        assert commission.status == CommissionStatus.EARNED
        assert commission.earned_amount == Decimal("10.00")
        assert commission.earned_at is not None

    def test_reverse_fully_moves_residual(self):
        """Should move the remaining commission into reversed_amount."""
        commission = CommissionFactory(
            payment__amount=Decimal("100.00"),
            status=CommissionStatus.EARNED,
            commission_amount=Decimal("6.00"),
            reversed_amount=Decimal("4.00"),
        )

        commission.reverse_fully()
        commission.save()

        assert commission.status == CommissionStatus.REVERSED
        assert commission.commission_amount == Decimal("0.00")
        assert commission.reversed_amount == Decimal("10.00")
        assert commission.hotel_earnings == Decimal("100.00")

    def test_pending_commission_cannot_be_reversed(self):
        commission = CommissionFactory()

        with pytest.raises(TransitionNotAllowed):
            commission.reverse_fully()

    def test_one_commission_per_payment(self):
        commission = CommissionFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            CommissionFactory(payment=commission.payment)

    def test_rate_must_be_a_fraction(self):
        with pytest.raises(IntegrityError), transaction.atomic():
            CommissionFactory(rate=Decimal("1.5000"))


@pytest.mark.django_db
class TestWebhookModels:
    """Test ledger entries and their delivery log."""

    def test_event_id_is_unique(self):
        WebhookEventFactory(event_id="evt_same")

        with pytest.raises(IntegrityError), transaction.atomic():
            WebhookEventFactory(event_id="evt_same")

    def test_received_at_is_created_at(self):
        event = WebhookEventFactory()

        assert event.received_at == event.created_at

    def test_delivery_rows_are_append_only(self):
        delivery = WebhookDeliveryFactory()
        delivery.latency_ms = 1

        with pytest.raises(ConflictError):
            delivery.save()
        with pytest.raises(ConflictError):
            delivery.delete()


@pytest.mark.django_db
class TestProviderCustomer:
    def test_unique_per_provider(self):
        ProviderCustomerFactory(provider_customer_id="cust_1")
        ProviderCustomerFactory(provider="stripe", provider_customer_id="cust_1")

        with pytest.raises(IntegrityError), transaction.atomic():
            ProviderCustomerFactory(provider_customer_id="cust_1")


def test_payment_str_includes_amount():
    payment = Payment(provider_transaction_id="sq_pay_1", amount=Decimal("10.00"), currency="USD")

    assert "sq_pay_1" in str(payment)
    assert "10.00 USD" in str(payment)
