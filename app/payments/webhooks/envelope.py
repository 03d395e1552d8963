"""
Webhook envelope parsing and replay-window validation.

Runs after signature verification and before anything is written. A body
that fails here is acknowledged with 200: the provider would only resend
the same bytes.

Expected shape (Square):
    {
        "merchant_id": "ML...",
        "type": "payment.updated",
        "event_id": "6a8f5f28-...",
        "created_at": "2025-01-01T12:00:00Z",
        "data": {"type": "payment", "id": "...", "object": {"payment": {...}}}
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from typing import Any, Callable

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from payments.exceptions import WebhookValidationError
from payments.models import WebhookEvent


@dataclass(frozen=True)
class WebhookEnvelope:
    """Validated top-level fields of a webhook body."""

    event_id: str
    event_type: str
    data: dict[str, Any]
    created_at: datetime | None = None
    merchant_id: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


def parse_envelope(
    raw_body: bytes,
    *,
    now: Callable[[], datetime] = timezone.now,
    max_age: timedelta | None = None,
    max_skew: timedelta | None = None,
) -> WebhookEnvelope:
    """
    Parse and validate a webhook body.

    Raises:
        WebhookValidationError: Body is not a JSON object, required fields
            are missing or too long for the ledger, or ``created_at`` is
            unparsable or outside the replay window.
    """
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise WebhookValidationError(
            "Webhook body is not valid JSON",
            error_code="INVALID_JSON",
        ) from exc

    if not isinstance(payload, dict):
        raise WebhookValidationError(
            "Webhook body must be a JSON object",
            error_code="INVALID_ENVELOPE",
        )

    missing = [
        name
        for name in ("event_id", "type")
        if not isinstance(payload.get(name), str) or not payload.get(name)
    ]
    if missing:
        details: dict[str, Any] = {"missing": missing}
        if "event_id" not in missing:
            details["event_id"] = payload["event_id"]
        raise WebhookValidationError(
            "Webhook body is missing required fields",
            error_code="INVALID_ENVELOPE",
            details=details,
        )

    _check_length(payload, "event_id", "event_id")
    _check_length(payload, "type", "event_type")

    data = payload.get("data")
    if not isinstance(data, dict):
        raise WebhookValidationError(
            "Webhook 'data' must be an object",
            error_code="INVALID_ENVELOPE",
            details={"event_id": payload["event_id"]},
        )

    created_at = None
    if payload.get("created_at") is not None:
        created_at = _parse_created_at(payload["created_at"], payload["event_id"])
        _check_replay_window(
            created_at,
            payload["event_id"],
            now=now(),
            max_age=max_age or timedelta(seconds=settings.WEBHOOK_REPLAY_MAX_AGE_SECONDS),
            max_skew=max_skew
            or timedelta(seconds=settings.WEBHOOK_REPLAY_MAX_SKEW_SECONDS),
        )

    return WebhookEnvelope(
        event_id=payload["event_id"],
        event_type=payload["type"],
        data=data,
        created_at=created_at,
        merchant_id=str(payload.get("merchant_id") or ""),
        raw=payload,
    )


def _check_length(payload: dict[str, Any], name: str, column: str) -> None:
    """Reject values the ledger column cannot store."""
    limit = WebhookEvent._meta.get_field(column).max_length
    if len(payload[name]) <= limit:
        return
    details: dict[str, Any] = {"field": name, "max_length": limit}
    if name != "event_id":
        details["event_id"] = payload["event_id"]
    raise WebhookValidationError(
        f"Webhook '{name}' is longer than {limit} characters",
        error_code="INVALID_ENVELOPE",
        details=details,
    )


def _parse_created_at(value: Any, event_id: str) -> datetime:
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value)
        except ValueError:
            parsed = None
    if parsed is None:
        raise WebhookValidationError(
            "Webhook 'created_at' is not an ISO-8601 timestamp",
            error_code="INVALID_TIMESTAMP",
            details={"event_id": event_id, "created_at": str(value)},
        )
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _check_replay_window(
    created_at: datetime,
    event_id: str,
    *,
    now: datetime,
    max_age: timedelta,
    max_skew: timedelta,
) -> None:
    if created_at < now - max_age:
        raise WebhookValidationError(
            "Webhook event is older than the replay window",
            error_code="EVENT_TOO_OLD",
            details={"event_id": event_id, "created_at": created_at.isoformat()},
        )
    if created_at > now + max_skew:
        raise WebhookValidationError(
            "Webhook event timestamp is in the future",
            error_code="EVENT_IN_FUTURE",
            details={"event_id": event_id, "created_at": created_at.isoformat()},
        )
