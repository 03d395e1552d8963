"""
Post-commit side effects of applied transitions.

The transition engine returns a list of SideEffect values; they are
dispatched only after the transaction commits, so no lock is held across a
network call and a failed email never undoes a committed transition.

Dispatch path per effect:
    breaker("notifications.email") -> one NotificationService.send attempt
    on failure -> enqueue notifications.tasks.send_notification (Celery),
                  which owns the backoff retries
    both fail  -> DownstreamError logged at error level

Callbacks run in the webhook request thread, so the immediate path never
sleeps between attempts.

Usage:
    from payments.side_effects import schedule_side_effects

    with transaction.atomic():
        result = TransitionEngine.apply(event, event_id=envelope.event_id)
        schedule_side_effects(result.side_effects)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from django.db import transaction

from core.exceptions import DownstreamError
from core.resilience import ExecutionResult, ResilienceConfig, ResilientExecutor

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking_confirmed"
PAYMENT_FAILED = "payment_failed"
REFUND_CONFIRMED = "refund_confirmed"

NOTIFICATION_OPERATION = "notifications.email"


@dataclass(frozen=True)
class SideEffect:
    """
    A notification to send once the transition is committed.

    ``context`` must stay JSON-serializable: it is passed to Celery when
    the immediate send fails.
    """

    kind: str
    booking_id: str
    context: dict[str, Any] = field(default_factory=dict)


def _send_now(effect: SideEffect) -> Any:
    from notifications.services import NotificationService

    return NotificationService.send(effect.kind, effect.booking_id, effect.context)


def _enqueue(effect: SideEffect) -> Any:
    from notifications.tasks import send_notification

    return send_notification.delay(effect.kind, effect.booking_id, effect.context)


class SideEffectDispatcher:
    """
    Sends side effects through the resilience layer.

    Args:
        executor: ResilientExecutor to use (defaults to the settings with a
            single attempt)
        send: Immediate delivery, defaults to NotificationService.send
        enqueue: Deferred delivery, defaults to the Celery task
    """

    def __init__(
        self,
        executor: ResilientExecutor | None = None,
        *,
        send: Callable[[SideEffect], Any] = _send_now,
        enqueue: Callable[[SideEffect], Any] = _enqueue,
    ):
        self.executor = executor or ResilientExecutor(
            ResilienceConfig.from_settings().single_attempt()
        )
        self._send = send
        self._enqueue = enqueue

    def dispatch_one(self, effect: SideEffect) -> ExecutionResult | None:
        try:
            result = self.executor.execute(
                NOTIFICATION_OPERATION,
                lambda: self._send(effect),
                lambda: self._enqueue(effect),
            )
        except DownstreamError as exc:
            logger.error(
                "Side effect failed on every path",
                extra={
                    "kind": effect.kind,
                    "booking_id": effect.booking_id,
                    "error_code": exc.error_code,
                },
                exc_info=True,
            )
            return None

        if result.used_fallback:
            logger.warning(
                "Side effect deferred to background delivery",
                extra={
                    "kind": effect.kind,
                    "booking_id": effect.booking_id,
                    "primary_error": str(result.primary_error),
                },
            )
        return result

    def dispatch(self, effects: Iterable[SideEffect]) -> list[ExecutionResult | None]:
        return [self.dispatch_one(effect) for effect in effects]


def schedule_side_effects(
    effects: Iterable[SideEffect],
    dispatcher: SideEffectDispatcher | None = None,
) -> None:
    """Dispatch ``effects`` after the current transaction commits."""
    effects = list(effects)
    if not effects:
        return

    def run() -> None:
        (dispatcher or SideEffectDispatcher()).dispatch(effects)

    transaction.on_commit(run)
