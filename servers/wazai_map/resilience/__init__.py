"""Resilience patterns for fan-out search and geocoding."""

from .circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitState
from .fallback import FallbackChain, FallbackExhaustedError, with_default
from .health import HealthMonitor
from .retry import is_retryable_http_error, retry_with_backoff

__all__ = [
    "retry_with_backoff",
    "is_retryable_http_error",
    "CircuitBreaker",
    "CircuitState",
    "CircuitBreakerOpenError",
    "FallbackChain",
    "FallbackExhaustedError",
    "with_default",
    "HealthMonitor",
]
