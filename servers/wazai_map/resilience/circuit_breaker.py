"""Circuit breaker guarding paid and rate-limited geocoder backends."""

import time
from enum import Enum
from typing import Any, Awaitable, Optional, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class CircuitState(Enum):
    """States for the circuit breaker."""

    CLOSED = "closed"  # Requests flow to the backend
    OPEN = "open"  # Backend is skipped
    HALF_OPEN = "half_open"  # One probe at a time until it proves healthy


class CircuitBreakerOpenError(Exception):
    """Raised when a call is attempted while the circuit is open."""

    def __init__(self, circuit_name: str):
        super().__init__(f"Circuit breaker '{circuit_name}' is open")
        self.circuit_name = circuit_name


class CircuitBreaker:
    """Stop calling a backend that keeps failing.

    A geocoder answering "no result" is healthy; only raised exceptions
    (timeouts, HTTP errors, quota denials) count as failures. After
    ``recovery_timeout`` seconds the breaker lets probe requests through and
    closes again after ``probe_successes`` consecutive successes.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        probe_successes: int = 2,
        name: str = "default",
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.probe_successes = probe_successes
        self.name = name
        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.opened_at: Optional[float] = None
        self._half_open_successes = 0

    async def call(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` under breaker protection.

        Raises:
            CircuitBreakerOpenError: If the circuit is open (the awaitable
                is closed without running)
            Exception: Whatever the awaitable raised, after recording it
        """
        if not self.allow_request():
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            raise CircuitBreakerOpenError(self.name)

        try:
            result = await awaitable
        except Exception as e:
            self._on_failure(e)
            raise

        self._on_success()
        return result

    def allow_request(self) -> bool:
        """Return False while open, moving to half-open once recovery is due."""
        if self.state != CircuitState.OPEN:
            return True
        if self.opened_at is not None and time.monotonic() - self.opened_at < self.recovery_timeout:
            return False

        self.state = CircuitState.HALF_OPEN
        self._half_open_successes = 0
        logger.info("circuit_half_open", circuit=self.name)
        return True

    def _on_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self._half_open_successes += 1
            if self._half_open_successes >= self.probe_successes:
                self.reset()
                logger.info("circuit_closed", circuit=self.name)
        else:
            self.failure_count = 0

    def _on_failure(self, error: Exception) -> None:
        self.failure_count += 1
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self.opened_at = time.monotonic()
            logger.warning(
                "circuit_opened",
                circuit=self.name,
                failure_count=self.failure_count,
                recovery_timeout=self.recovery_timeout,
                error=str(error),
            )

    def reset(self) -> None:
        """Return to the closed state and forget past failures."""
        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.opened_at = None
        self._half_open_successes = 0

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    def get_status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
        }
