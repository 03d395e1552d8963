"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps. Nothing in
here knows about bookings or payments.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - AppendOnlyMixin: Insert-only audit rows

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError, NotFoundError, ConflictError, ExternalServiceError

Resilience (import from core.circuit_breaker, core.resilience):
    - CircuitBreaker: Cache-backed breaker keyed by operation name
    - RetryPolicy / retry_call: Exponential backoff for transient failures
    - execute_with_fallback: Primary/fallback execution
    - ResilientExecutor: Breaker + retry + fallback from one config
"""
