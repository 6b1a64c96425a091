"""Cancellation tokens for in-flight chat requests."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from ..errors import CancellationSignal

T = TypeVar("T")


class CancellationToken:
    """Cancels the work started through it, once.

    Work run via :meth:`run` becomes an asyncio task; cancelling the token
    cancels those tasks and their awaiters see CancellationSignal instead of
    asyncio.CancelledError. Cancelling the awaiting task itself still
    propagates CancelledError as usual.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Cancel all running work. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        for task in self._tasks:
            task.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancellationSignal("Operation was cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless or until the token is cancelled.

        Raises:
            CancellationSignal: If the token was cancelled before or during the await
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if self._cancelled and (current is None or current.cancelling() == 0):
                raise CancellationSignal("Operation was cancelled") from None
            raise
        finally:
            self._tasks.discard(task)
