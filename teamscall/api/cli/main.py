"""teamscall entry point.

Configuration comes from the environment only (see teamscall.core.config).
Exit status is 0 after SIGINT/SIGTERM and 1 on configuration errors or when
the watch pipeline fails.
"""

import asyncio
import signal
import sys

from loguru import logger

from teamscall.core.config.config import Config, load_config
from teamscall.core.exceptions import ConfigError
from teamscall.services.call_status_service import CallStatusService

_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<level>{message}</level>"
)


def setup_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT)


async def run_service(config: Config) -> None:
    """Run the call status service until a shutdown signal arrives."""
    service = CallStatusService(config)
    run_task = asyncio.create_task(service.run())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, run_task.cancel)
        except (NotImplementedError, RuntimeError):
            # Windows: Ctrl+C still surfaces as KeyboardInterrupt
            pass

    try:
        await run_task
    except asyncio.CancelledError:
        if not run_task.cancelled():
            raise
        logger.info("Shutdown requested")


def main() -> None:
    setup_logging()

    try:
        config = load_config()
    except ConfigError as e:
        for problem in e.problems:
            logger.error(problem)
        sys.exit(1)

    setup_logging(config.watch.log_level)

    try:
        asyncio.run(run_service(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as e:
        logger.exception(f"Call status pipeline failed: {e}")
        sys.exit(1)


__all__: list[str] = ["main", "run_service", "setup_logging"]
