"""
Retry, fallback and combined execution for downstream calls.

Used for anything that runs outside a database transaction and may fail
for reasons unrelated to our own data, e.g. sending a notification after a
booking transition has committed.

Building blocks:
    RetryPolicy / retry_call: exponential backoff for transient failures
    execute_with_fallback: run a primary callable, fall back on failure
    ResilientExecutor: circuit breaker + retry + fallback from one config

Usage:
    from core.resilience import ResilienceConfig, ResilientExecutor

    executor = ResilientExecutor(ResilienceConfig.from_settings())
    executor.execute(
        "notifications.email",
        primary=lambda: send_now(message),
        fallback=lambda: send_notification.delay(...),
    )

Transient vs permanent:
    An exception is transient when it sets ``is_retryable = True`` or is a
    timeout/connection/OS-level error (SMTP errors are OSErrors).
    Application errors default to ``is_retryable = False``, so validation
    failures are raised immediately without a retry.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Generic, TypeVar

from core.circuit_breaker import CircuitBreaker
from core.exceptions import DownstreamError, is_transient_error

if TYPE_CHECKING:
    from collections.abc import Callable

    from django.core.cache.backends.base import BaseCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Retry with backoff
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff settings.

    The delay before retry ``n`` (0-indexed) is
    ``min(base_delay * backoff_factor ** n (+ up to 25% jitter), max_delay)``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """
        Seconds to wait after the given failed attempt.

        Example (no jitter, defaults):
            attempt 0 -> 1.0, attempt 1 -> 2.0, attempt 2 -> 4.0
        """
        delay = self.base_delay * (self.backoff_factor**attempt)
        if self.jitter:
            # Jitter (0-25%) spreads retries from concurrent workers
            delay += delay * random.uniform(0, 0.25)
        return min(delay, self.max_delay)


def retry_call(
    func: Callable[[], T],
    policy: RetryPolicy,
    *,
    operation: str = "",
    is_transient: Callable[[BaseException], bool] = is_transient_error,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``func`` until it succeeds or the policy gives up.

    Non-transient errors propagate on the first occurrence. After the last
    attempt the last transient error propagates unchanged.
    """
    attempts = max(1, policy.max_attempts)
    for attempt in range(attempts):
        try:
            return func()
        except Exception as exc:
            if not is_transient(exc):
                raise
            if attempt + 1 >= attempts:
                logger.warning(
                    f"{operation or 'operation'} failed after {attempts} attempts",
                    extra={"operation": operation, "attempts": attempts},
                )
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                f"Retrying {operation or 'operation'} in {delay:.2f}s",
                extra={
                    "operation": operation,
                    "attempt": attempt + 1,
                    "delay": delay,
                    "error": str(exc),
                },
            )
            sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover


# =============================================================================
# Graceful degradation
# =============================================================================


@dataclass
class ExecutionResult(Generic[T]):
    """Outcome of a primary/fallback execution."""

    value: T | None
    used_fallback: bool = False
    primary_error: BaseException | None = field(default=None, repr=False)


def execute_with_fallback(
    primary: Callable[[], T],
    fallback: Callable[[], T] | None,
    *,
    operation: str = "",
) -> ExecutionResult[T]:
    """
    Run ``primary``; on any failure run ``fallback``.

    Raises:
        DownstreamError: both paths failed (or primary failed with no
            fallback). Chained to the primary error; the fallback error is
            kept in ``details``.
    """
    try:
        return ExecutionResult(value=primary())
    except Exception as primary_error:
        if fallback is None:
            raise DownstreamError(
                f"{operation or 'operation'} failed with no fallback",
                details={"operation": operation, "primary_error": str(primary_error)},
            ) from primary_error

        logger.warning(
            f"Primary path for {operation or 'operation'} failed, using fallback",
            extra={"operation": operation, "error": str(primary_error)},
        )
        try:
            value = fallback()
        except Exception as fallback_error:
            raise DownstreamError(
                f"{operation or 'operation'} failed on primary and fallback",
                details={
                    "operation": operation,
                    "primary_error": str(primary_error),
                    "fallback_error": str(fallback_error),
                },
            ) from primary_error

        return ExecutionResult(value=value, used_fallback=True, primary_error=primary_error)


# =============================================================================
# Combined executor
# =============================================================================


@dataclass(frozen=True)
class ResilienceConfig:
    """Tuning for ResilientExecutor, passed explicitly at construction."""

    retry: RetryPolicy = field(default_factory=RetryPolicy)
    failure_threshold: int = 5
    recovery_timeout: float = 60

    @classmethod
    def from_settings(cls) -> ResilienceConfig:
        """Build a config from the RESILIENCE_* Django settings."""
        from django.conf import settings

        return cls(
            retry=RetryPolicy(
                max_attempts=settings.RESILIENCE_MAX_ATTEMPTS,
                base_delay=settings.RESILIENCE_BASE_DELAY_SECONDS,
                max_delay=settings.RESILIENCE_MAX_DELAY_SECONDS,
                backoff_factor=settings.RESILIENCE_BACKOFF_FACTOR,
                jitter=settings.RESILIENCE_RETRY_JITTER,
            ),
            failure_threshold=settings.RESILIENCE_CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=settings.RESILIENCE_CIRCUIT_RECOVERY_TIMEOUT,
        )

    def single_attempt(self) -> ResilienceConfig:
        """Same breaker settings, one attempt and no backoff sleep."""
        return replace(self, retry=replace(self.retry, max_attempts=1))


class ResilientExecutor:
    """
    Circuit breaker, retry and fallback around a downstream operation.

    Each primary attempt goes through the breaker named after the
    operation. When the breaker is open the attempt fails fast with a
    non-retryable CircuitOpenError and the executor moves straight to the
    fallback.

    Example:
        executor = ResilientExecutor(config, sleep=lambda _: None)
        result = executor.execute("notifications.email", primary, fallback)
        if result.used_fallback:
            ...
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        cache: BaseCache | None = None,
    ):
        self.config = config
        self._clock = clock
        self._sleep = sleep
        self._cache = cache
        self._breakers: dict[str, CircuitBreaker] = {}

    def breaker(self, operation: str) -> CircuitBreaker:
        """Circuit breaker for ``operation`` (state shared through the cache)."""
        if operation not in self._breakers:
            self._breakers[operation] = CircuitBreaker(
                name=operation,
                failure_threshold=self.config.failure_threshold,
                recovery_timeout=self.config.recovery_timeout,
                clock=self._clock,
                cache=self._cache,
            )
        return self._breakers[operation]

    def execute(
        self,
        operation: str,
        primary: Callable[[], T],
        fallback: Callable[[], T] | None = None,
    ) -> ExecutionResult[T]:
        """
        Run ``primary`` with retries behind the breaker, then ``fallback``.

        Raises:
            DownstreamError: primary and fallback both failed
        """
        circuit = self.breaker(operation)

        def guarded() -> T:
            with circuit.call():
                return primary()

        return execute_with_fallback(
            lambda: retry_call(
                guarded,
                self.config.retry,
                operation=operation,
                sleep=self._sleep,
            ),
            fallback,
            operation=operation,
        )
