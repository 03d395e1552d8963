"""Tests for the webhook HTTP endpoints."""

from unittest.mock import patch

import pytest
from django.urls import reverse

from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus
from payments.webhooks.tests.payloads import encode, payment_event

pytestmark = pytest.mark.django_db


@pytest.fixture
def url():
    return reverse("webhooks:provider", kwargs={"provider": "square"})


@pytest.fixture
def post(client, url, square_settings):
    def _post(body, signature=None, path=None):
        headers = {}
        if signature is not None:
            headers["HTTP_X_SQUARE_HMACSHA256_SIGNATURE"] = signature
        return client.post(path or url, data=body, content_type="application/json", **headers)

    return _post


class TestProviderWebhook:
    @patch("payments.side_effects.SideEffectDispatcher.dispatch")
    def test_signed_delivery(self, dispatch, post, sign, pending_payment):
        body = encode(payment_event("sq_pay_1", event_id="evt_view"))

        response = post(body, sign(body))

        assert response.status_code == 200
        assert response.json() == {"success": True, "event_id": "evt_view", "outcome": "applied"}
        assert Payment.objects.get(pk=pending_payment.pk).status == PaymentStatus.SUCCEEDED

    def test_bad_signature_is_401(self, post, pending_payment):
        response = post(encode(payment_event("sq_pay_1")), "bogus")

        assert response.status_code == 401
        assert response.json()["outcome"] == "unauthorized"
        assert not WebhookEvent.objects.exists()

    def test_missing_signature_is_401(self, post):
        response = post(encode(payment_event("sq_pay_1")))

        assert response.status_code == 401

    def test_invalid_body_is_acknowledged(self, post, sign):
        body = b"[]"

        response = post(body, sign(body))

        assert response.status_code == 200
        assert response.json() == {"success": True, "event_id": None, "outcome": "invalid"}

    def test_unknown_provider_is_404(self, post):
        path = reverse("webhooks:provider", kwargs={"provider": "paypal"})

        response = post(b"{}", "sig", path=path)

        assert response.status_code == 404
        assert response.json()["outcome"] == "unknown_provider"

    def test_unexpected_error_is_500(self, post, sign, pending_payment):
        body = encode(payment_event("sq_pay_1", event_id="evt_boom"))

        with patch(
            "payments.webhooks.processor.dispatch_event",
            side_effect=RuntimeError("boom"),
        ):
            response = post(body, sign(body))

        assert response.status_code == 500
        assert response.json() == {"success": False, "event_id": None, "outcome": "error"}
        assert not WebhookEvent.objects.exists()

    def test_get_not_allowed(self, client, url, square_settings):
        assert client.get(url).status_code == 405


class TestWebhookHealth:
    def test_reports_providers_and_circuit(self, client, square_settings):
        response = client.get(reverse("webhooks:health"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["providers"][0]["name"] == "square"
        assert data["providers"][0]["secret_configured"] is True
        assert data["circuits"][0]["name"] == "notifications.email"
        assert data["circuits"][0]["state"] == "closed"

    def test_missing_secret_is_degraded(self, client, square_settings):
        square_settings.WEBHOOK_PROVIDERS = {"square": {"SECRET": ""}}

        response = client.get(reverse("webhooks:health"))

        assert response.json()["status"] == "degraded"
