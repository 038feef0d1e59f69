"""Filesystem observation of the Teams log file.

Architecture:
- wait_for_file polls until the log exists as a regular file
- watch_file_changes runs a watchdog observer on the log's directory and turns
  events for the log into notifications on the event loop
- watch_with_rearm chains the two forever, so deleting, rotating or replacing
  the log just sends the pipeline back to polling

The watchdog thread never touches pipeline state; it only schedules queue
inserts on the loop with call_soon_threadsafe.
"""

import asyncio
import stat
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path
from typing import Any

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from teamscall.core.exceptions import WatchError
from teamscall.core.utils.path_utils import normalize_file_path
from teamscall.utils.platform_constants import OBSERVER_JOIN_TIMEOUT

DEFAULT_POLL_INTERVAL = 1.0

# How long the change queue may stay idle before the observer thread is checked
_HEALTH_CHECK_SECONDS = 2.0

CHANGED = "changed"
ENDED = "ended"

# Watchdog event types that say nothing about the file content
_IGNORED_EVENT_TYPES = frozenset({"opened", "closed", "closed_no_write"})


def is_regular_file(file_path: Path) -> bool:
    """Return True if ``file_path`` exists and is a regular file.

    A missing path is not an error. Any other OSError propagates.
    """
    try:
        mode = file_path.stat().st_mode
    except FileNotFoundError:
        return False
    return stat.S_ISREG(mode)


async def wait_for_file(
    file_path: Path, interval: float = DEFAULT_POLL_INTERVAL
) -> None:
    """Return once ``file_path`` is a regular file, checking every ``interval`` seconds.

    The first check happens immediately.

    Raises:
        OSError: For anything other than the file not existing yet.
    """
    announced = False
    while not is_regular_file(file_path):
        if not announced:
            logger.info(f"Waiting for {file_path} to appear")
            announced = True
        else:
            logger.debug(f"{file_path} not present yet")
        await asyncio.sleep(interval)


class LogFileEventHandler(FileSystemEventHandler):
    """Forward watchdog events for one file into an asyncio queue."""

    def __init__(
        self,
        file_path: Path,
        event_queue: asyncio.Queue,
        loop: asyncio.AbstractEventLoop,
    ):
        self.file_path = normalize_file_path(file_path)
        self.directory = self.file_path.parent
        self.event_queue = event_queue
        self.loop = loop

    def on_any_event(self, event: Any) -> None:
        """Classify a watchdog event - runs on the observer thread."""
        if event.event_type in _IGNORED_EVENT_TYPES:
            return

        src_path = normalize_file_path(event.src_path)
        dest_raw = getattr(event, "dest_path", "")
        dest_path = normalize_file_path(dest_raw) if dest_raw else None

        if event.is_directory:
            # Losing the directory means losing the watch on the file
            if event.event_type in ("deleted", "moved") and src_path == self.directory:
                self._queue_event(ENDED, event.event_type)
            return

        if src_path != self.file_path and dest_path != self.file_path:
            return

        if event.event_type == "modified":
            self._queue_event(CHANGED, event.event_type)
        else:
            # deleted, moved away, moved into place or recreated: re-arm
            self._queue_event(ENDED, event.event_type)

    def _queue_event(self, kind: str, event_type: str) -> None:
        """Queue a notification for the event loop."""
        if self.loop.is_closed():
            return
        try:
            self.loop.call_soon_threadsafe(self.event_queue.put_nowait, (kind, event_type))
        except RuntimeError as e:
            # Loop closed between the check and the call
            logger.debug(f"Dropping {event_type} event for {self.file_path}: {e}")


async def watch_file_changes(file_path: Path) -> AsyncIterator[None]:
    """Yield once immediately, then once per modification of ``file_path``.

    Ends normally when the file is deleted, moved or replaced. The observer is
    stopped on every exit path, including when the consumer closes the
    iterator.

    Raises:
        OSError: If the watch cannot be established.
        WatchError: If the observer thread dies while watching.
    """
    loop = asyncio.get_running_loop()
    event_queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue()
    handler = LogFileEventHandler(file_path, event_queue, loop)
    observer = Observer()

    try:
        observer.schedule(handler, str(handler.directory), recursive=False)
        observer.start()
        logger.info(f"Watching {file_path} for changes")

        yield

        while True:
            try:
                kind, event_type = await asyncio.wait_for(
                    event_queue.get(), timeout=_HEALTH_CHECK_SECONDS
                )
            except asyncio.TimeoutError:
                if not observer.is_alive():
                    raise WatchError(
                        f"Filesystem observer for {file_path} stopped unexpectedly"
                    )
                continue

            if kind == CHANGED:
                yield
                continue

            logger.info(f"Watch on {file_path} ended ({event_type})")
            return
    finally:
        observer.stop()
        if observer.is_alive():
            # Join off the loop so a slow observer thread doesn't stall it
            try:
                await asyncio.wait_for(
                    loop.run_in_executor(None, observer.join),
                    timeout=OBSERVER_JOIN_TIMEOUT,
                )
            except asyncio.TimeoutError:
                logger.warning("Filesystem observer did not exit within timeout")


async def watch_with_rearm(
    file_path: Path, poll_interval: float = DEFAULT_POLL_INTERVAL
) -> AsyncIterator[None]:
    """Notifications for ``file_path`` that survive deletion and rotation.

    Each time the inner watch ends the file is polled for again, and once it
    is back a fresh watch starts with its own immediate notification.
    """
    while True:
        await wait_for_file(file_path, poll_interval)
        async with aclosing(watch_file_changes(file_path)) as changes:
            async for _ in changes:
                yield
        logger.info(f"Re-arming watch on {file_path}")
