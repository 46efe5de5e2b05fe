"""Retry with exponential backoff for upstream HTTP calls."""

import asyncio
import random
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
import structlog

logger = structlog.get_logger()

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_retryable_http_error(error: BaseException) -> bool:
    """Transport failures and throttling/5xx responses are worth retrying."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return False


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    should_retry: Callable[[BaseException], bool] = is_retryable_http_error,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for async retry with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (first call included)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Randomize the delay to spread retries out
        should_retry: Predicate deciding whether an exception is retryable;
            anything else is raised immediately

    Returns:
        Decorated async function with retry logic
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not should_retry(e) or attempt == max_attempts - 1:
                        if attempt > 0:
                            logger.error(
                                "retry_exhausted",
                                function=func.__name__,
                                attempts=attempt + 1,
                                error=str(e),
                            )
                        raise

                    delay = min(base_delay * (exponential_base**attempt), max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()

                    logger.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=round(delay, 2),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("retry_with_backoff requires max_attempts >= 1")

        return wrapper  # type: ignore

    return decorator
