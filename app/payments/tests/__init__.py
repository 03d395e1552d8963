"""
Tests for the payments app.

Modules:
- test_models.py: Payment, Refund, Commission and ledger model rules
- test_state_transitions.py: Pure transition planner over every booking state
- test_transition_engine.py: Applying routed events to stored rows
- test_commissions.py: Commission ledger functions
- test_services.py: PaymentService.record_payment
- test_side_effects.py: Post-commit notification dispatch
- test_views.py: Admin audit API

Webhook pipeline tests live in payments/webhooks/tests/.
"""
