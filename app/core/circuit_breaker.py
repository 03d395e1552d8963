"""
Cache-backed circuit breaker for downstream calls.

One record per operation name lives in Django's cache (Redis when
``REDIS_URL`` is set), so web processes and Celery workers guarding the
same operation trip and recover together.

States:
    - CLOSED: calls pass through; consecutive failures are counted
    - OPEN: calls fail fast until ``recovery_timeout`` has elapsed
    - HALF_OPEN: up to ``half_open_max_calls`` probes are let through;
      a successful probe closes the circuit, a failed one reopens it

Usage:
    from core.circuit_breaker import CircuitBreaker

    breaker = CircuitBreaker("notifications.email", failure_threshold=5)

    with breaker.call():
        send_mail(...)

The clock and cache are constructor arguments so tests move time by hand.
If the cache itself errors the breaker lets calls through.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from core.exceptions import ExternalServiceError, is_transient_error

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from django.core.cache.backends.base import BaseCache

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = 5
    recovery_timeout: float = 60
    half_open_max_calls: int = 1
    record_ttl: int = 3600


class CircuitOpenError(ExternalServiceError):
    """
    The guarded operation was not attempted because its circuit is open.

    Never retried: the caller goes straight to its fallback.
    """

    default_error_code: str = "CIRCUIT_OPEN"
    is_retryable: bool = False


@dataclass
class CircuitRecord:
    """Shared state of one circuit as stored in the cache."""

    state: str = CircuitState.CLOSED.value
    failures: int = 0
    opened_at: float | None = None
    probes: int = 0

    @classmethod
    def from_cache(cls, raw: Any) -> CircuitRecord:
        if not isinstance(raw, dict):
            return cls()
        record = cls(**{k: raw[k] for k in ("state", "failures", "opened_at", "probes") if k in raw})
        if record.state not in {s.value for s in CircuitState}:
            return cls()
        return record


class CircuitBreaker:
    """
    Circuit breaker for one named operation.

    Example:
        breaker = CircuitBreaker("notifications.email", failure_threshold=3)

        if breaker.is_available():
            try:
                send()
            except OSError:
                breaker.record_failure()
                raise
            breaker.record_success()
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        half_open_max_calls: int = 1,
        *,
        clock: Callable[[], float] = time.time,
        cache: BaseCache | None = None,
    ):
        self.name = name
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            half_open_max_calls=half_open_max_calls,
        )
        self._clock = clock
        if cache is None:
            from django.core.cache import cache as default_cache

            cache = default_cache
        self._cache = cache
        self._key = f"circuit:{name}"

    # =========================================================================
    # Gate
    # =========================================================================

    def is_available(self) -> bool:
        """
        Whether a call may go through now.

        An open circuit whose recovery timeout has elapsed moves to
        half-open here. Every True answer in half-open uses up one probe.
        """
        try:
            record = self._load()
            state = CircuitState(record.state)

            if state == CircuitState.CLOSED:
                return True

            if state == CircuitState.OPEN:
                if not self._recovery_elapsed(record):
                    return False
                record.state = CircuitState.HALF_OPEN.value
                record.probes = 0
                logger.info("Circuit half-open, allowing probe", extra={"circuit": self.name})

            if record.probes >= self.config.half_open_max_calls:
                return False
            record.probes += 1
            self._store(record)
            return True

        except Exception as e:
            logger.warning(
                f"Circuit state unavailable, allowing call: {e}",
                extra={"circuit": self.name},
            )
            return True

    def record_success(self) -> None:
        try:
            record = self._load()
            if record.state == CircuitState.HALF_OPEN.value:
                logger.info("Circuit closed after successful probe", extra={"circuit": self.name})
            self._store(CircuitRecord())
        except Exception as e:
            logger.warning(f"Could not record circuit success: {e}", extra={"circuit": self.name})

    def record_failure(self) -> None:
        """Count a failure; open at the threshold, reopen on a failed probe."""
        try:
            record = self._load()

            if record.state == CircuitState.HALF_OPEN.value:
                self._store(self._opened())
                logger.warning("Circuit reopened after failed probe", extra={"circuit": self.name})
                return

            record.failures += 1
            if record.failures < self.config.failure_threshold:
                self._store(record)
                return

            self._store(self._opened())
            logger.warning(
                f"Circuit opened after {record.failures} consecutive failures",
                extra={
                    "circuit": self.name,
                    "failure_count": record.failures,
                    "threshold": self.config.failure_threshold,
                },
            )
        except Exception as e:
            logger.warning(f"Could not record circuit failure: {e}", extra={"circuit": self.name})

    @contextmanager
    def call(self) -> Iterator[None]:
        """
        Guard a block with the breaker.

        Raises CircuitOpenError without running the block when the circuit
        rejects the call. Only transient errors count as failures; a
        permanent one (missing booking, bad template) leaves the counts
        alone and hands back a half-open probe.
        """
        if not self.is_available():
            raise CircuitOpenError(
                f"Circuit '{self.name}' is open",
                details={"circuit": self.name},
            )
        try:
            yield
        except Exception as exc:
            if is_transient_error(exc):
                self.record_failure()
            else:
                self._release_probe()
            raise
        self.record_success()

    # =========================================================================
    # Admin
    # =========================================================================

    def reset(self) -> None:
        self._cache.delete(self._key)
        logger.info("Circuit reset", extra={"circuit": self.name})

    def get_status(self) -> dict[str, Any]:
        """Snapshot for health endpoints. Does not use up a probe."""
        try:
            record = self._load()
        except Exception as e:
            return {"name": self.name, "state": "unknown", "error": str(e)}

        status: dict[str, Any] = {
            "name": self.name,
            "state": record.state,
            "failure_count": record.failures,
            "failure_threshold": self.config.failure_threshold,
        }
        if record.state == CircuitState.OPEN.value and record.opened_at is not None:
            elapsed = self._clock() - record.opened_at
            status["opened_seconds_ago"] = int(elapsed)
            status["recovery_in_seconds"] = max(0, int(self.config.recovery_timeout - elapsed))
        return status

    # =========================================================================
    # Storage
    # =========================================================================

    def _load(self) -> CircuitRecord:
        return CircuitRecord.from_cache(self._cache.get(self._key))

    def _store(self, record: CircuitRecord) -> None:
        self._cache.set(self._key, asdict(record), timeout=self.config.record_ttl)

    def _release_probe(self) -> None:
        try:
            record = self._load()
            if record.state == CircuitState.HALF_OPEN.value and record.probes > 0:
                record.probes -= 1
                self._store(record)
        except Exception as e:
            logger.warning(f"Could not release circuit probe: {e}", extra={"circuit": self.name})

    def _opened(self) -> CircuitRecord:
        return CircuitRecord(state=CircuitState.OPEN.value, opened_at=self._clock())

    def _recovery_elapsed(self, record: CircuitRecord) -> bool:
        if record.opened_at is None:
            return True
        return self._clock() - record.opened_at >= self.config.recovery_timeout

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self.name!r}, state={self._load().state})"
