"""Retry policies independent of the transport doing the work."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from constants import Constants

from .cancellation import CancelToken
from .errors import OperationCancelledError
from .logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts to make and how long to wait between them.

    ``delay(attempt)`` is linear: the wait after the n-th failed attempt is
    ``n * base_delay`` seconds.
    """

    max_attempts: int = Constants.HTTP_RETRY_MAX
    base_delay: float = Constants.HTTP_RETRY_BASE_DELAY_SEC

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return attempt * self.base_delay

    def should_retry(self, attempt: int) -> bool:
        """True when another attempt follows failed attempt ``attempt``."""
        return attempt < self.max_attempts


class RetryExhausted(Exception):
    """Internal signal carrying the last error and the attempt count."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(str(last_error))


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[BaseException], ...],
    token: Optional[CancelToken] = None,
    context: str = "operation",
) -> T:
    """Run ``operation(attempt)`` until it succeeds or the policy gives up.

    Args:
        operation: Coroutine factory receiving the 1-based attempt number.
        policy: Attempt count and backoff.
        retry_on: Exception types that count as a failed attempt; anything else
            propagates immediately.
        token: Optional cancellation token checked before every attempt and
            honoured during backoff sleeps.
        context: Label used in log records.

    Raises:
        RetryExhausted: After ``policy.max_attempts`` failures.
        OperationCancelledError: When ``token`` is cancelled.
    """
    token = token or CancelToken()
    last_error: Optional[BaseException] = None
    for attempt in range(1, policy.max_attempts + 1):
        token.raise_if_cancelled()
        try:
            return await operation(attempt)
        except OperationCancelledError:
            raise
        except retry_on as exc:
            last_error = exc
            if not policy.should_retry(attempt):
                break
            wait = policy.delay(attempt)
            logger.warning(
                "%s attempt %d/%d failed: %s; retrying in %.1fs",
                context,
                attempt,
                policy.max_attempts,
                exc,
                wait,
            )
            if is_debug_enabled(logger):
                logger.debug(
                    "Retry scheduled",
                    extra=extra_context(
                        event="retry",
                        component="retry",
                        action=context,
                        attempt=attempt,
                        outcome=type(exc).__name__,
                    ),
                )
            await token.sleep(wait)

    assert last_error is not None
    raise RetryExhausted(policy.max_attempts, last_error)
