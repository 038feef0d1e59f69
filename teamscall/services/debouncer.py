"""Trailing-edge coalescing of change notifications.

Teams can write dozens of lines in a burst; re-reading the whole log for each
of them is wasted work. The debouncer turns a notification stream into a tick
stream with at most one tick per window.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import aclosing

from loguru import logger

DEFAULT_WINDOW = 1.0


class Debouncer:
    """Coalesce bursts of notifications into single ticks.

    A burst opens a window at its first notification; when the window closes
    one tick is emitted regardless of how many notifications arrived in it.
    With ``leading=True`` the very first notification ever seen is emitted
    immediately instead, so startup does not wait a full window.
    """

    def __init__(self, window: float = DEFAULT_WINDOW, leading: bool = True):
        if window <= 0:
            raise ValueError(f"Debounce window must be positive, got {window}")
        self.window = window
        self.leading = leading
        self.notifications = 0
        self.ticks_emitted = 0

    async def ticks(self, source: AsyncIterator[None]) -> AsyncIterator[None]:
        """Yield one tick per window of activity on ``source``.

        Errors raised by ``source`` are re-raised here as soon as they happen.
        If ``source`` ends, a tick still pending is delivered first.
        """
        pending = asyncio.Event()

        async def pump() -> None:
            async with aclosing(source) as notifications:
                async for _ in notifications:
                    self.notifications += 1
                    pending.set()

        pump_task = asyncio.create_task(pump())
        primed = self.leading
        try:
            while True:
                if not pending.is_set():
                    waiter = asyncio.create_task(pending.wait())
                    try:
                        await asyncio.wait(
                            {waiter, pump_task}, return_when=asyncio.FIRST_COMPLETED
                        )
                    finally:
                        waiter.cancel()
                _raise_if_failed(pump_task)

                if not pending.is_set():
                    # Source finished with nothing left to report
                    return

                if primed:
                    primed = False
                elif not pump_task.done():
                    await asyncio.wait({pump_task}, timeout=self.window)
                    _raise_if_failed(pump_task)

                # Anything arriving after this point belongs to the next window
                pending.clear()
                self.ticks_emitted += 1
                logger.debug(
                    f"Debounce tick #{self.ticks_emitted} "
                    f"({self.notifications} notifications so far)"
                )
                yield
        finally:
            pump_task.cancel()
            await asyncio.gather(pump_task, return_exceptions=True)


def _raise_if_failed(task: asyncio.Task) -> None:
    if task.done() and not task.cancelled():
        exc = task.exception()
        if exc is not None:
            raise exc
