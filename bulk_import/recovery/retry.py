import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from bulk_import.exceptions import ConfigError, RetryExhaustedError

logger = structlog.get_logger()

T = TypeVar("T")


def _log_failure(context: dict[str, Any] | None, max_attempts: int) -> Callable[[RetryCallState], None]:
    def after(retry_state: RetryCallState) -> None:
        logger.warning(
            "operation_failed",
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            error=str(retry_state.outcome.exception()),
            context=context,
        )

    return after


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    context: dict[str, Any] | None = None,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Await ``operation`` up to ``max_attempts`` times with linear backoff.

    The wait before attempt ``n + 1`` is ``base_delay * n``. Errors outside
    ``retry_on`` propagate immediately; cancellation is never swallowed, so a
    cancelled run stops before its next attempt.
    """
    if max_attempts < 1:
        raise ConfigError(f"max_attempts must be at least 1, got {max_attempts}")
    if base_delay < 0:
        raise ConfigError(f"base_delay must not be negative, got {base_delay}")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_exception_type(retry_on),
        after=_log_failure(context, max_attempts),
        sleep=sleep,
    )
    try:
        return await retrying(operation)
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        raise RetryExhaustedError(max_attempts, last_error) from last_error
