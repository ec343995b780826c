"""Cooperative cancellation threaded through resolve/fetch/retry calls."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Optional, TypeVar

from .errors import OperationCancelledError

T = TypeVar("T")


class CancelToken:
    """Cancellation flag with an optional monotonic deadline.

    A token is created by the caller and passed down; library code calls
    ``raise_if_cancelled`` at safe points, sleeps through ``sleep`` and wraps
    long awaits with ``guard`` so that ``cancel()`` or an expired deadline
    interrupts them.
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize the token.

        Args:
            timeout: Optional number of seconds after which the token counts
                as cancelled.
        """
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = False
        self._reason = "cancelled"
        self._event: Optional[asyncio.Event] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        """Return a token that expires ``seconds`` from now."""
        return cls(timeout=seconds)

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation."""
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancelled or past the deadline."""
        if self._cancelled:
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """Raise ``OperationCancelledError`` when the token is no longer live."""
        if self._cancelled:
            raise OperationCancelledError(self._reason)
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelledError("deadline exceeded")

    def _wake_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    async def sleep(self, delay: float) -> None:
        """Sleep up to ``delay`` seconds, waking early on cancellation."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is not None and remaining < delay:
            delay = remaining
        try:
            await asyncio.wait_for(self._wake_event().wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
        self.raise_if_cancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token is cancelled first."""
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._wake_event().wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.raise_if_cancelled()
        # Deadline hit while the task was still running.
        raise OperationCancelledError("deadline exceeded")


async def guarded(awaitable: Awaitable[T], token: Optional[CancelToken]) -> T:
    """Await ``awaitable`` through ``token`` when one is given."""
    if token is None:
        return await awaitable
    return await token.guard(awaitable)
