import asyncio
import unittest

from teamscall.services.debouncer import Debouncer


async def _notifications(
    count: int, spacing: float, hold: asyncio.Event | None = None
):
    """Yield ``count`` notifications ``spacing`` seconds apart, then optionally idle."""
    for i in range(count):
        if i:
            await asyncio.sleep(spacing)
        yield
    if hold is not None:
        await hold.wait()


async def _failing_source(error: Exception):
    yield
    raise error


class DebouncerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.hold = asyncio.Event()
        self.tick_times: list[float] = []

    async def _collect(self, debouncer: Debouncer, source, duration: float) -> None:
        loop = asyncio.get_running_loop()

        async def consume() -> None:
            async for _ in debouncer.ticks(source):
                self.tick_times.append(loop.time())

        task = asyncio.create_task(consume())
        await asyncio.sleep(duration)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    def test_rejects_non_positive_window(self) -> None:
        with self.assertRaises(ValueError):
            Debouncer(window=0)

    async def test_burst_within_window_yields_single_tick(self) -> None:
        debouncer = Debouncer(window=1.0, leading=False)
        start = asyncio.get_running_loop().time()

        # 5 notifications within 200ms
        await self._collect(debouncer, _notifications(5, 0.05, self.hold), duration=1.6)

        self.assertEqual(len(self.tick_times), 1)
        self.assertEqual(debouncer.notifications, 5)
        self.assertGreaterEqual(self.tick_times[0] - start, 0.9)

    async def test_leading_tick_is_immediate(self) -> None:
        debouncer = Debouncer(window=1.0, leading=True)
        start = asyncio.get_running_loop().time()

        await self._collect(debouncer, _notifications(1, 0, self.hold), duration=0.3)

        self.assertEqual(len(self.tick_times), 1)
        self.assertLess(self.tick_times[0] - start, 0.2)

    async def test_leading_tick_then_trailing_tick_for_rest_of_burst(self) -> None:
        debouncer = Debouncer(window=0.3, leading=True)

        await self._collect(debouncer, _notifications(4, 0.05, self.hold), duration=0.9)

        self.assertEqual(len(self.tick_times), 2)
        self.assertGreaterEqual(self.tick_times[1] - self.tick_times[0], 0.25)

    async def test_separate_bursts_get_separate_ticks(self) -> None:
        debouncer = Debouncer(window=0.2, leading=False)

        async def two_bursts():
            async for _ in _notifications(3, 0.02):
                yield
            await asyncio.sleep(0.5)
            async for _ in _notifications(3, 0.02, self.hold):
                yield

        await self._collect(debouncer, two_bursts(), duration=1.2)

        self.assertEqual(len(self.tick_times), 2)

    async def test_source_error_propagates(self) -> None:
        debouncer = Debouncer(window=5.0, leading=False)
        start = asyncio.get_running_loop().time()

        with self.assertRaises(PermissionError):
            async for _ in debouncer.ticks(_failing_source(PermissionError("denied"))):
                pass

        # Raised promptly, not after the window
        self.assertLess(asyncio.get_running_loop().time() - start, 1.0)

    async def test_pending_tick_delivered_when_source_ends(self) -> None:
        debouncer = Debouncer(window=0.2, leading=False)

        ticks = 0
        async for _ in debouncer.ticks(_notifications(3, 0.01)):
            ticks += 1

        self.assertEqual(ticks, 1)

    async def test_closing_ticks_closes_source(self) -> None:
        closed = asyncio.Event()

        async def source():
            try:
                yield
                await self.hold.wait()
            finally:
                closed.set()

        debouncer = Debouncer(window=0.2, leading=True)
        ticks = debouncer.ticks(source())
        await ticks.__anext__()
        await ticks.aclose()

        self.assertTrue(closed.is_set())
