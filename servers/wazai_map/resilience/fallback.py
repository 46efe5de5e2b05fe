"""Fallback helpers for graceful degradation."""

from typing import Any, Callable, Coroutine, Optional, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class FallbackExhaustedError(Exception):
    """Raised when no function in a FallbackChain produced an accepted result."""

    def __init__(self, names: list[str], last_error: Optional[Exception] = None):
        super().__init__(f"No accepted result from {', '.join(names) or 'empty chain'}")
        self.names = names
        self.last_error = last_error


def _is_present(result: Any) -> bool:
    return result is not None


def _name_of(func: Callable) -> str:
    name = getattr(func, "__name__", None) or type(func).__name__
    owner = getattr(getattr(func, "__self__", None), "name", None)
    return f"{owner}.{name}" if isinstance(owner, str) else name


class FallbackChain:
    """Execute async functions in order until one yields an accepted result.

    A function that raises is logged and skipped. A function that returns a
    result rejected by ``accept`` (by default: ``None``) counts as a miss and
    the next function is tried.
    """

    def __init__(
        self,
        *functions: Callable[..., Coroutine[Any, Any, T]],
        accept: Callable[[Any], bool] = _is_present,
    ):
        self.functions = functions
        self.accept = accept

    async def execute(self, *args: Any, **kwargs: Any) -> T:
        """Run the chain.

        Returns:
            Result from the first function whose result is accepted

        Raises:
            FallbackExhaustedError: If every function missed or failed
        """
        last_error: Optional[Exception] = None

        for i, func in enumerate(self.functions):
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                last_error = e
                logger.warning(
                    "fallback_attempt_failed",
                    function=_name_of(func),
                    attempt=i + 1,
                    total_functions=len(self.functions),
                    error=str(e),
                )
                continue

            if self.accept(result):
                if i > 0:
                    logger.info(
                        "fallback_used",
                        function=_name_of(func),
                        attempt=i + 1,
                        total_functions=len(self.functions),
                    )
                return result

        names = [_name_of(f) for f in self.functions]
        logger.debug("fallback_chain_exhausted", functions=names)
        raise FallbackExhaustedError(names, last_error)


async def with_default(
    func: Callable[..., Coroutine[Any, Any, T]],
    default: T,
    *args: Any,
    **kwargs: Any,
) -> T:
    """Execute function and return default value on failure.

    Args:
        func: Async function to execute
        default: Value to return if function fails
        *args: Positional arguments for function
        **kwargs: Keyword arguments for function

    Returns:
        Function result or default value
    """
    try:
        return await func(*args, **kwargs)
    except Exception as e:
        logger.warning(
            "using_default_value",
            function=_name_of(func),
            error=str(e),
        )
        return default
