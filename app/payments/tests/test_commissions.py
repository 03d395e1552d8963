"""
Tests for the commission ledger service functions.
"""

from decimal import Decimal

import pytest

from payments.exceptions import PaymentValidationError, TransitionError
from payments.models import Commission
from payments.services.commissions import (
    create_commission,
    earn_commission,
    mark_commissions_paid,
    reverse_commission,
    summarize,
    to_money,
)
from payments.state_machines import CommissionStatus
from payments.tests.factories import (
    CommissionFactory,
    EarnedCommissionFactory,
    PaymentFactory,
)


def test_to_money_rounds_half_up():
    assert to_money(Decimal("1.005")) == Decimal("1.01")
    assert to_money("2") == Decimal("2.00")


@pytest.mark.django_db
class TestCreateCommission:
    """Test create_commission()."""

    def test_uses_default_rate(self, settings):
        settings.COMMISSION_DEFAULT_RATE = "0.05"
        payment = PaymentFactory(amount=Decimal("450.00"))

        commission = create_commission(payment.booking, payment, payment.amount)

        assert commission.rate == Decimal("0.05")
        assert commission.commission_amount == Decimal("22.50")
        assert commission.hotel_earnings == Decimal("427.50")
        assert commission.status == CommissionStatus.PENDING
        assert commission.currency == payment.currency

    def test_rate_override_is_stored(self):
        """Should persist the rate used so later settings changes do not apply."""
        payment = PaymentFactory(amount=Decimal("99.99"))

        commission = create_commission(payment.booking, payment, payment.amount, rate="0.125")

        assert Commission.objects.get(pk=commission.pk).rate == Decimal("0.1250")
        assert commission.commission_amount == Decimal("12.50")

    @pytest.mark.parametrize("rate", ["-0.01", "1.01", "abc"])
    def test_rejects_invalid_rate(self, rate):
        payment = PaymentFactory()

        with pytest.raises(PaymentValidationError):
            create_commission(payment.booking, payment, payment.amount, rate=rate)

    def test_rejects_non_positive_base(self):
        payment = PaymentFactory()

        with pytest.raises(PaymentValidationError):
            create_commission(payment.booking, payment, Decimal("0"))


@pytest.mark.django_db
class TestEarnCommission:
    def test_earns_pending_commission(self):
        commission = CommissionFactory(payment__amount=Decimal("100.00"))

        earned = earn_commission(commission.payment)

        assert earned.pk == commission.pk
        assert earned.status == CommissionStatus.EARNED
        assert earned.earned_amount == Decimal("10.00")

    def test_rejects_commission_already_earned(self):
        """Should not earn the same commission twice."""
        commission = EarnedCommissionFactory()

        with pytest.raises(TransitionError) as exc_info:
            earn_commission(commission.payment)

        assert exc_info.value.error_code == "COMMISSION_NOT_PENDING"


@pytest.mark.django_db
class TestReverseCommission:
    """Test reverse_commission()."""

    @pytest.fixture
    def commission(self):
        # 5% of 450.00
        return EarnedCommissionFactory(
            payment__amount=Decimal("450.00"),
            rate=Decimal("0.0500"),
        )

    def test_partial_reversal_is_proportional(self, commission):
        """Should reverse earned * refund / base."""
        reversed_ = reverse_commission(commission.payment, Decimal("225.00"))

        assert reversed_.status == CommissionStatus.EARNED
        assert reversed_.commission_amount == Decimal("11.25")
        assert reversed_.reversed_amount == Decimal("11.25")
        assert reversed_.hotel_earnings == Decimal("438.75")

    def test_partial_reversal_rounds_half_up(self, commission):
        reversed_ = reverse_commission(commission.payment, Decimal("1.00"))

        assert reversed_.reversed_amount == Decimal("0.05")

    def test_full_reversal_without_amount(self, commission):
        reversed_ = reverse_commission(commission.payment)

        assert reversed_.status == CommissionStatus.REVERSED
        assert reversed_.commission_amount == Decimal("0.00")
        assert reversed_.reversed_amount == Decimal("22.50")
        assert reversed_.reversed_at is not None

    def test_refund_of_whole_base_is_full_reversal(self, commission):
        reversed_ = reverse_commission(commission.payment, Decimal("450.00"))

        assert reversed_.status == CommissionStatus.REVERSED

    def test_reversal_never_exceeds_residual(self, commission):
        """Should clamp repeated partial reversals to what remains."""
        reverse_commission(commission.payment, Decimal("300.00"))
        reversed_ = reverse_commission(commission.payment, Decimal("300.00"))

        assert reversed_.commission_amount == Decimal("0.00")
        assert reversed_.reversed_amount == Decimal("22.50")
        assert reversed_.status == CommissionStatus.REVERSED

    def test_records_each_reversal_in_metadata(self, commission):
        reverse_commission(commission.payment, Decimal("90.00"))
        reversed_ = reverse_commission(commission.payment, Decimal("45.00"))

        reversals = reversed_.metadata["reversals"]
        assert [r["reversed"] for r in reversals] == ["4.50", "2.25"]
        assert reversals[0]["refund_amount"] == "90.00"

    def test_pending_commission_cannot_be_reversed(self):
        commission = CommissionFactory()

        with pytest.raises(TransitionError) as exc_info:
            reverse_commission(commission.payment, Decimal("10.00"))

        assert exc_info.value.error_code == "COMMISSION_NOT_EARNED"

    def test_missing_commission_cannot_be_reversed(self):
        with pytest.raises(TransitionError):
            reverse_commission(PaymentFactory())


@pytest.mark.django_db
class TestMarkCommissionsPaid:
    def test_marks_only_earned_commissions(self):
        """Should skip commissions that are not earned."""
        earned = EarnedCommissionFactory()
        pending = CommissionFactory()

        updated = mark_commissions_paid([earned.id, pending.id], "payout_2026_10")

        assert updated == 1
        earned = Commission.objects.get(pk=earned.pk)
        assert earned.status == CommissionStatus.PAID
        assert earned.payout_reference == "payout_2026_10"
        assert earned.paid_at is not None
        assert Commission.objects.get(pk=pending.pk).status == CommissionStatus.PENDING

    def test_empty_batch_is_a_no_op(self):
        assert mark_commissions_paid([], "payout_1") == 0

    def test_requires_payout_reference(self):
        with pytest.raises(PaymentValidationError):
            mark_commissions_paid([EarnedCommissionFactory().id], "")


@pytest.mark.django_db
class TestSummarize:
    def test_totals_by_status(self):
        """Should total residual amounts per status and all reversals."""
        EarnedCommissionFactory(payment__amount=Decimal("100.00"))
        EarnedCommissionFactory(payment__amount=Decimal("200.00"))
        CommissionFactory(payment__amount=Decimal("50.00"))
        reversed_ = EarnedCommissionFactory(payment__amount=Decimal("300.00"))
        reverse_commission(reversed_.payment)

        totals = summarize()

        assert totals["earned"] == Decimal("30.00")
        assert totals["pending"] == Decimal("5.00")
        assert totals["reversed"] == Decimal("30.00")
        assert totals["paid"] == Decimal("0.00")
        assert totals["count"] == 4
        assert totals["currency"] is None

    def test_filters_by_currency(self):
        EarnedCommissionFactory(payment__amount=Decimal("100.00"))
        EarnedCommissionFactory(
            payment__amount=Decimal("100.00"),
            payment__currency="EUR",
        )

        totals = summarize("eur")

        assert totals["currency"] == "EUR"
        assert totals["count"] == 1
        assert totals["earned"] == Decimal("10.00")
