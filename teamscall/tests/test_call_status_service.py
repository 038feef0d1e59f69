import asyncio
import importlib.util
import tempfile
import time
import unittest
from pathlib import Path

from teamscall.core.config.config import Config
from teamscall.core.config.mqtt_config import MQTTConfig
from teamscall.core.config.watch_config import WatchConfig
from teamscall.core.types import CallState
from teamscall.utils.platform_constants import IS_WINDOWS

_REQUIRED_MODULES = ("loguru", "watchdog", "paho")
_MISSING_MODULES = [
    name for name in _REQUIRED_MODULES if importlib.util.find_spec(name) is None
]

if not _MISSING_MODULES:
    from teamscall.services.call_status_service import CallStatusService

CALL_STARTED = "Mon Jun 05 2023 09:00:00 GMT+0200 <812> -- event -- eventData: s::;m::1;a::1\n"
CALL_ENDED = "Mon Jun 05 2023 09:30:00 GMT+0200 <812> -- event -- eventData: s::;m::1;a::3\n"
NOISE = "Mon Jun 05 2023 09:30:01 GMT+0200 <812> -- info -- presence poll\n"


class _RecordingPublisher:
    def __init__(self) -> None:
        self.started = False
        self.closed = False
        self.states: list[CallState] = []

    def start(self) -> None:
        self.started = True

    def publish_call_state(self, state: CallState) -> None:
        self.states.append(state)

    def close(self) -> None:
        self.closed = True


class _SlowClosePublisher(_RecordingPublisher):
    """Publisher whose close() waits on a slow broker acknowledgement."""

    def close(self) -> None:
        time.sleep(0.5)
        self.closed = True


async def _eventually(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


class CallStatusServiceTests(unittest.IsolatedAsyncioTestCase):
    debounce_window = 0.2

    async def asyncSetUp(self) -> None:
        if _MISSING_MODULES:
            missing = ", ".join(_MISSING_MODULES)
            self.skipTest(
                f"Missing python deps ({missing}); install teamscall requirements to run this test."
            )
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name).resolve()
        self.log_file = self.root / "logs.txt"
        self.publisher = _RecordingPublisher()
        self.service = self._make_service(self.log_file)
        self.task: asyncio.Task | None = None

    async def asyncTearDown(self) -> None:
        if self.task is not None:
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
        self.temp_dir.cleanup()

    def _make_service(self, log_file: Path) -> "CallStatusService":
        config = Config(
            mqtt=MQTTConfig(
                broker="localhost", client_id="test", username="user", password="pass"
            ),
            watch=WatchConfig(
                log_file=log_file,
                poll_interval=0.05,
                debounce_window=self.debounce_window,
            ),
        )
        return CallStatusService(config, publisher=self.publisher)

    def _append(self, text: str) -> None:
        with self.log_file.open("a", encoding="utf-8") as fh:
            fh.write(text)

    async def _start(self) -> None:
        self.task = asyncio.create_task(self.service.run())
        await asyncio.sleep(0.1)

    async def _start_with(self, content: str, expected: list[CallState]) -> None:
        self.log_file.write_text(content, encoding="utf-8")
        await self._start()
        self.assertTrue(await _eventually(lambda: self.publisher.states == expected))

    async def test_file_created_after_start_publishes_off(self) -> None:
        await self._start()
        self.assertTrue(self.publisher.started)
        self.assertEqual(self.publisher.states, [])

        self.log_file.write_text(CALL_ENDED, encoding="utf-8")

        self.assertTrue(
            await _eventually(lambda: self.publisher.states == [CallState.NOT_IN_CALL])
        )

    async def test_call_start_publishes_on(self) -> None:
        await self._start_with(CALL_ENDED, [CallState.NOT_IN_CALL])

        self._append(CALL_STARTED)

        self.assertTrue(
            await _eventually(
                lambda: self.publisher.states
                == [CallState.NOT_IN_CALL, CallState.IN_CALL]
            )
        )

    async def test_unrelated_lines_do_not_republish(self) -> None:
        await self._start_with(CALL_ENDED, [CallState.NOT_IN_CALL])
        evaluations = self.service.evaluations

        self._append(NOISE)
        self._append(NOISE)

        self.assertTrue(
            await _eventually(lambda: self.service.evaluations > evaluations)
        )
        await asyncio.sleep(self.debounce_window * 2)
        self.assertEqual(self.publisher.states, [CallState.NOT_IN_CALL])

    async def test_recovers_after_file_is_recreated(self) -> None:
        await self._start_with(CALL_ENDED, [CallState.NOT_IN_CALL])

        self.log_file.unlink()
        await asyncio.sleep(0.3)
        self.log_file.write_text(CALL_STARTED, encoding="utf-8")

        self.assertTrue(
            await _eventually(
                lambda: self.publisher.states
                == [CallState.NOT_IN_CALL, CallState.IN_CALL]
            )
        )

    async def test_cancellation_closes_publisher(self) -> None:
        await self._start_with(CALL_STARTED, [CallState.IN_CALL])

        self.task.cancel()
        await asyncio.gather(self.task, return_exceptions=True)
        self.task = None

        self.assertTrue(self.publisher.closed)

    async def test_slow_publisher_close_does_not_block_loop(self) -> None:
        self.publisher = _SlowClosePublisher()
        self.service = self._make_service(self.log_file)
        await self._start_with(CALL_STARTED, [CallState.IN_CALL])
        gaps: list[float] = []

        async def heartbeat() -> None:
            last = time.monotonic()
            while True:
                await asyncio.sleep(0.02)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        beat = asyncio.create_task(heartbeat())
        await asyncio.sleep(0.05)
        try:
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
            self.task = None
        finally:
            beat.cancel()
            await asyncio.gather(beat, return_exceptions=True)

        self.assertTrue(self.publisher.closed)
        self.assertGreater(len(gaps), 10)
        self.assertLess(max(gaps), 0.25)

    @unittest.skipIf(IS_WINDOWS, "NotADirectoryError is POSIX behaviour")
    async def test_filesystem_error_ends_run_and_closes_publisher(self) -> None:
        blocker = self.root / "blocker"
        blocker.write_text("not a directory")
        service = self._make_service(blocker / "logs.txt")

        with self.assertRaises(NotADirectoryError):
            await asyncio.wait_for(service.run(), timeout=2.0)

        self.assertTrue(self.publisher.closed)

    async def test_evaluate_skips_vanished_file(self) -> None:
        self.assertIsNone(self.service.evaluate())
        self.assertEqual(self.publisher.states, [])
        self.assertEqual(self.service.evaluations, 0)


class CallStatusDebounceTests(CallStatusServiceTests):
    """Rapid appends inside one window are evaluated once."""

    debounce_window = 0.6

    async def test_rapid_appends_publish_once(self) -> None:
        await self._start_with(CALL_ENDED, [CallState.NOT_IN_CALL])
        ticks = self.service.debouncer.ticks_emitted

        self._append(CALL_STARTED)
        await asyncio.sleep(0.02)
        self._append(CALL_STARTED)

        self.assertTrue(
            await _eventually(
                lambda: self.publisher.states
                == [CallState.NOT_IN_CALL, CallState.IN_CALL]
            )
        )
        await asyncio.sleep(self.debounce_window * 1.5)
        self.assertEqual(self.service.debouncer.ticks_emitted, ticks + 1)
        self.assertEqual(
            self.publisher.states, [CallState.NOT_IN_CALL, CallState.IN_CALL]
        )
