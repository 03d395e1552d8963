"""
Service layer base classes.

- ServiceResult: success/failure wrapper for expected outcomes
- BaseService: per-class logger, transaction helper, exception logging

Services return a ServiceResult when the caller is expected to branch on
the outcome (bad input, unknown booking). They raise when the failure has
to abort the surrounding transaction (a rejected state transition).

Usage:
    from core.services import BaseService, ServiceResult

    class PaymentService(BaseService):
        @classmethod
        def record_payment(cls, params) -> ServiceResult[Payment]:
            if params.amount <= 0:
                return ServiceResult.failure("Amount must be positive", "INVALID_AMOUNT")
            with cls.atomic():
                payment = Payment.objects.create(...)
            return ServiceResult.success(payment)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Iterator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service call.

    ``success`` is the instance flag; ``ServiceResult.success(data)`` is
    the constructor for the happy path.

    Usage:
        result = PaymentService.record_payment(params)
        if not result:
            return Response({"error_code": result.error_code}, status=400)
        payment = result.data
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """Failed result carrying the exception's own error code when it has one."""
        code = error_code or getattr(exc, "error_code", None) or type(exc).__name__.upper()
        return cls(
            success=False,
            error=getattr(exc, "message", None) or str(exc),
            error_code=code,
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base for stateless service classes (classmethods only).

    Configuration is passed to each call; nothing is kept on the class.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Iterator[None]:
        """``transaction.atomic()``; a savepoint when already inside one."""
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Log ``exc`` and turn it into a failed ServiceResult.

        Tracebacks are attached at ERROR and above.
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=log_level >= logging.ERROR)
        return ServiceResult.from_exception(exc)
