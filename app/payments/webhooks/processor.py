"""
Webhook processing pipeline for one HTTP delivery.

Order of steps:
    1. Verify the signature             -> 401 on failure, nothing written
    2. Parse envelope + replay window   -> 200 "invalid", nothing written
    3. Route the event (pure)           -> 200 "invalid", nothing written
    4. In one transaction:
         record the event id in the ledger (duplicate -> 200 "duplicate")
         run the handler in a savepoint (TransitionError -> "rejected")
         attach the outcome, append the delivery row
    5. After commit: dispatch side effects through the resilience layer

Any other exception escapes the transaction, which rolls back the ledger
entry too, so the provider's retry is processed from scratch.

Usage:
    processor = WebhookProcessor(get_provider_config("square"))
    result = processor.process(request.body, request.headers.get(header))
    return JsonResponse(result.to_response(), status=result.status_code)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from django.db import transaction
from django.utils import timezone

from payments.exceptions import TransitionError, WebhookValidationError
from payments.side_effects import SideEffectDispatcher, schedule_side_effects
from payments.state_machines import DeliveryOutcome, WebhookOutcome
from payments.webhooks.config import WebhookProviderConfig
from payments.webhooks.envelope import parse_envelope
from payments.webhooks.handlers import HandlerContext, dispatch_event
from payments.webhooks.ledger import EventLedger
from payments.webhooks.router import route, summarize
from payments.webhooks.signature import WebhookVerifier

logger = logging.getLogger(__name__)

UNAUTHORIZED = "unauthorized"
INVALID = "invalid"


@dataclass(frozen=True)
class ProcessingResult:
    """HTTP status and outcome of one delivery."""

    status_code: int
    outcome: str
    event_id: str | None = None
    detail: str = ""

    def to_response(self) -> dict[str, Any]:
        return {
            "success": self.status_code == 200,
            "event_id": self.event_id,
            "outcome": self.outcome,
        }


class WebhookProcessor:
    """
    Runs the webhook pipeline for one provider.

    Args:
        config: Provider signing configuration
        dispatcher: Side-effect dispatcher (built lazily on commit if omitted)
        now: Wall clock for the replay window
        monotonic: Clock for latency measurement
    """

    def __init__(
        self,
        config: WebhookProviderConfig,
        *,
        dispatcher: SideEffectDispatcher | None = None,
        now: Callable[[], datetime] = timezone.now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.verifier = WebhookVerifier(config)
        self.dispatcher = dispatcher
        self._now = now
        self._monotonic = monotonic

    def process(self, raw_body: bytes, signature: str | None) -> ProcessingResult:
        started = self._monotonic()

        verification = self.verifier.check(raw_body, signature)
        if not verification.valid:
            logger.warning(
                "Webhook rejected: signature verification failed",
                extra={"provider": self.config.name, "reason": verification.reason},
            )
            return ProcessingResult(401, UNAUTHORIZED, detail=verification.reason)

        event_id = None
        try:
            envelope = parse_envelope(raw_body, now=self._now)
            event_id = envelope.event_id
            routed = route(envelope.event_type, envelope.data)
        except WebhookValidationError as exc:
            event_id = event_id or exc.details.get("event_id")
            logger.warning(
                "Webhook payload rejected",
                extra={
                    "provider": self.config.name,
                    "event_id": event_id,
                    "error_code": exc.error_code,
                    "details": exc.details,
                },
            )
            return ProcessingResult(200, INVALID, event_id, detail=exc.error_code)

        summary = summarize(routed)
        context = HandlerContext(provider=self.config.name, event_id=envelope.event_id)

        with transaction.atomic():
            record = EventLedger.record_if_new(
                self.config.name,
                envelope.event_id,
                envelope.event_type,
                summary,
            )
            if not record.is_new:
                outcome = DeliveryOutcome.DUPLICATE
                detail = record.event.outcome
            else:
                outcome, detail = self._handle(routed, context)
                EventLedger.attach_outcome(
                    record.event,
                    outcome,
                    detail,
                    routed_as=summary["routed_as"],
                )
            latency_ms = int((self._monotonic() - started) * 1000)
            EventLedger.log_delivery(record.event, outcome, latency_ms)

        logger.info(
            "Webhook processed",
            extra={
                "provider": self.config.name,
                "event_id": envelope.event_id,
                "event_type": envelope.event_type,
                "routed_as": summary["routed_as"],
                "outcome": str(outcome),
                "detail": detail,
                "latency_ms": latency_ms,
            },
        )
        return ProcessingResult(200, str(outcome), envelope.event_id, detail=detail)

    def _handle(self, routed, context: HandlerContext) -> tuple[str, str]:
        try:
            with transaction.atomic():
                result = dispatch_event(routed, context)
        except TransitionError as exc:
            logger.warning(
                "Webhook event rejected by transition rules",
                extra={
                    "event_id": context.event_id,
                    "error_code": exc.error_code,
                    "details": exc.details,
                },
            )
            return WebhookOutcome.REJECTED, exc.error_code

        schedule_side_effects(result.side_effects, self.dispatcher)
        return result.outcome, result.detail
