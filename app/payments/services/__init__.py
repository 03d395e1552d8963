"""
Payment services.

This package provides:
- PaymentService: Records charge attempts (Payment + pending Commission)
- TransitionEngine: Applies webhook events to booking/payment/refund/commission
- commissions: Commission ledger functions

Usage:
    from payments.services import PaymentService, RecordPaymentParams

    result = PaymentService.record_payment(
        RecordPaymentParams(booking=booking, provider_transaction_id="sq_pay_1")
    )

    from payments.services import TransitionEngine

    TransitionEngine.apply(routed_event, event_id="evt_1", actor="webhook:square")
"""

from payments.services.payments import PaymentService, RecordPaymentParams
from payments.services.transitions import (
    TransitionEngine,
    TransitionPlan,
    TransitionResult,
    TransitionSnapshot,
    plan_transition,
)

__all__ = [
    "PaymentService",
    "RecordPaymentParams",
    "TransitionEngine",
    "TransitionPlan",
    "TransitionResult",
    "TransitionSnapshot",
    "plan_transition",
]
