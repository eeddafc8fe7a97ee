"""Cooperative cancellation.

A :class:`CancelToken` is passed into every call that can suspend. It is
checked, never force-interrupts: tasks look at it when they start and race it
against network I/O through :meth:`CancelToken.guard`. CPU-bound work such as
resizing and encoding always runs to completion once started.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from image_search.errors import OperationCancelled

T = TypeVar("T")


class CancelToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Raises OperationCancelled (and cancels the pending work) if the token
        is set before the awaitable finishes.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            await _settle(task)
            raise OperationCancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()

        await _settle(task)
        raise OperationCancelled()


async def _settle(task: asyncio.Future) -> None:
    # asyncio.wait does not re-raise the child's CancelledError, but still
    # propagates a cancellation aimed at the awaiting task itself.
    await asyncio.wait({task})
    if not task.cancelled():
        task.exception()
