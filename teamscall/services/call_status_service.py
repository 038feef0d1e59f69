"""Teams call status pipeline.

Architecture:
- watch_with_rearm produces change notifications for the Teams log
- Debouncer collapses them into at most one tick per window
- each tick re-reads the log, and distinct call states go to the MQTT bridge

One tick is processed at a time, on the event loop, in the order ticks are
produced. The observer and the broker connection are released on every exit
path of run().
"""

import asyncio
from contextlib import aclosing
from typing import Protocol

from loguru import logger

from teamscall.core.config.config import Config
from teamscall.core.types import CallState
from teamscall.services.change_gate import ChangeGate
from teamscall.services.debouncer import Debouncer
from teamscall.services.file_watch_service import watch_with_rearm
from teamscall.services.publisher_bridge import PublisherBridge
from teamscall.services.status_extractor import read_call_state


class CallStatePublisher(Protocol):
    """What the pipeline needs from the broker side."""

    def start(self) -> None: ...

    def publish_call_state(self, state: CallState) -> object: ...

    def close(self) -> None: ...


class CallStatusService:
    """Watch the Teams log and publish call presence changes."""

    def __init__(self, config: Config, publisher: CallStatePublisher | None = None):
        self.config = config
        self.log_file = config.watch.log_file
        self.publisher: CallStatePublisher = publisher or PublisherBridge(
            config.mqtt,
            availability_topic=config.watch.availability_topic,
            state_topic=config.watch.state_topic,
        )
        self.gate = ChangeGate()
        self.debouncer = Debouncer(window=config.watch.debounce_window, leading=True)
        self.evaluations = 0
        self.published = 0

    async def run(self) -> None:
        """Run until cancelled or a filesystem error ends the pipeline."""
        logger.debug(f"Starting call status service with {self.config!r}")
        self.publisher.start()
        try:
            notifications = watch_with_rearm(
                self.log_file, poll_interval=self.config.watch.poll_interval
            )
            async with aclosing(self.debouncer.ticks(notifications)) as ticks:
                async for _ in ticks:
                    self.evaluate()
        finally:
            # close() may wait on the broker acknowledging "offline"
            await asyncio.to_thread(self.publisher.close)

    def evaluate(self) -> CallState | None:
        """Re-read the log and publish the call state if it changed.

        Returns the state read, or None if the file vanished before it could
        be read; the re-armed watch will read it again when it is back.
        """
        try:
            state = read_call_state(self.log_file)
        except FileNotFoundError:
            logger.warning(f"{self.log_file} disappeared before it could be read")
            return None
        self.evaluations += 1

        if not self.gate.accept(state):
            logger.debug(f"Call state unchanged ({state.name})")
            return state

        logger.info(f"in call: {str(state.in_call).lower()}")
        self.publisher.publish_call_state(state)
        self.published += 1
        return state
