"""Tests for webhook envelope parsing and the replay window."""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

import pytest

from payments.exceptions import WebhookValidationError
from payments.webhooks.envelope import parse_envelope
from payments.webhooks.tests.payloads import encode, payment_event

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=dt_timezone.utc)
WINDOW = {"now": lambda: NOW, "max_age": timedelta(hours=1), "max_skew": timedelta(minutes=5)}


def parse(payload, **kwargs):
    body = payload if isinstance(payload, bytes) else encode(payload)
    return parse_envelope(body, **{**WINDOW, **kwargs})


def error_code_for(payload):
    with pytest.raises(WebhookValidationError) as exc_info:
        parse(payload)
    return exc_info.value.error_code


class TestParseEnvelope:
    def test_valid_envelope(self):
        payload = payment_event("sq_pay_1", event_id="evt_1", created_at=NOW)

        envelope = parse(payload)

        assert envelope.event_id == "evt_1"
        assert envelope.event_type == "payment.updated"
        assert envelope.created_at == NOW
        assert envelope.merchant_id == "ML_TEST"
        assert envelope.data["object"]["payment"]["id"] == "sq_pay_1"

    def test_created_at_is_optional(self):
        payload = {"event_id": "evt_1", "type": "payment.updated", "data": {}}

        assert parse(payload).created_at is None

    def test_naive_timestamp_is_utc(self):
        payload = {
            "event_id": "evt_1",
            "type": "payment.updated",
            "created_at": "2026-06-01T11:30:00",
            "data": {},
        }

        assert parse(payload).created_at == datetime(2026, 6, 1, 11, 30, tzinfo=dt_timezone.utc)

    def test_invalid_json(self):
        assert error_code_for(b"{not json") == "INVALID_JSON"

    def test_non_utf8_body(self):
        assert error_code_for(b"\xff\xfe") == "INVALID_JSON"

    def test_body_must_be_object(self):
        assert error_code_for(b"[1, 2]") == "INVALID_ENVELOPE"

    @pytest.mark.parametrize("field", ["event_id", "type"])
    def test_missing_required_field(self, field):
        payload = payment_event("sq_pay_1", created_at=NOW)
        del payload[field]

        with pytest.raises(WebhookValidationError) as exc_info:
            parse(payload)

        assert exc_info.value.error_code == "INVALID_ENVELOPE"
        assert exc_info.value.details["missing"] == [field]

    def test_empty_event_id(self):
        payload = payment_event("sq_pay_1", created_at=NOW)
        payload["event_id"] = ""

        assert error_code_for(payload) == "INVALID_ENVELOPE"

    def test_missing_type_keeps_event_id(self):
        payload = payment_event("sq_pay_1", event_id="evt_1", created_at=NOW)
        del payload["type"]

        with pytest.raises(WebhookValidationError) as exc_info:
            parse(payload)

        assert exc_info.value.details["event_id"] == "evt_1"

    def test_event_id_longer_than_ledger_column(self):
        payload = payment_event("sq_pay_1", event_id="e" * 256, created_at=NOW)

        with pytest.raises(WebhookValidationError) as exc_info:
            parse(payload)

        assert exc_info.value.error_code == "INVALID_ENVELOPE"
        assert exc_info.value.details == {"field": "event_id", "max_length": 255}

    def test_event_id_at_column_limit_is_accepted(self):
        payload = payment_event("sq_pay_1", event_id="e" * 255, created_at=NOW)

        assert parse(payload).event_id == "e" * 255

    def test_event_type_longer_than_ledger_column(self):
        payload = payment_event("sq_pay_1", event_id="evt_1", created_at=NOW)
        payload["type"] = "vendor." + "x" * 100

        with pytest.raises(WebhookValidationError) as exc_info:
            parse(payload)

        assert exc_info.value.error_code == "INVALID_ENVELOPE"
        assert exc_info.value.details["field"] == "type"
        assert exc_info.value.details["max_length"] == 100
        assert exc_info.value.details["event_id"] == "evt_1"

    def test_data_must_be_object(self):
        payload = {"event_id": "evt_1", "type": "payment.updated", "data": "x"}

        assert error_code_for(payload) == "INVALID_ENVELOPE"

    def test_unparsable_timestamp(self):
        payload = payment_event("sq_pay_1")
        payload["created_at"] = "yesterday"

        assert error_code_for(payload) == "INVALID_TIMESTAMP"

    def test_numeric_timestamp_is_rejected(self):
        payload = payment_event("sq_pay_1")
        payload["created_at"] = 1767225600

        assert error_code_for(payload) == "INVALID_TIMESTAMP"


class TestReplayWindow:
    def test_event_older_than_window(self):
        payload = payment_event("sq_pay_1", created_at=NOW - timedelta(hours=1, seconds=1))

        assert error_code_for(payload) == "EVENT_TOO_OLD"

    def test_event_at_window_edge_is_accepted(self):
        payload = payment_event("sq_pay_1", created_at=NOW - timedelta(hours=1))

        assert parse(payload).created_at == NOW - timedelta(hours=1)

    def test_event_in_future_beyond_skew(self):
        payload = payment_event("sq_pay_1", created_at=NOW + timedelta(minutes=6))

        assert error_code_for(payload) == "EVENT_IN_FUTURE"

    def test_small_clock_skew_is_tolerated(self):
        payload = payment_event("sq_pay_1", created_at=NOW + timedelta(minutes=4))

        assert parse(payload).created_at == NOW + timedelta(minutes=4)

    def test_window_defaults_come_from_settings(self, settings):
        settings.WEBHOOK_REPLAY_MAX_AGE_SECONDS = 60
        payload = payment_event("sq_pay_1", created_at=NOW - timedelta(minutes=2))

        with pytest.raises(WebhookValidationError) as exc_info:
            parse_envelope(encode(payload), now=lambda: NOW)

        assert exc_info.value.error_code == "EVENT_TOO_OLD"
