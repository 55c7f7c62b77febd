"""Standalone event worker process.

Run with ``sitepulse-worker`` (or ``python -m sitepulse.worker.runner``).
SIGINT/SIGTERM stop claiming, let in-flight jobs finish and release any
job that was claimed but not started.
"""

import asyncio
import signal

from sitepulse.logging.config import configure_logging, get_logger
from sitepulse.queue.event_queue import EventQueue
from sitepulse.repositories.base import open_aws_clients
from sitepulse.repositories.event_repository import EventRepository
from sitepulse.worker.event_worker import EventWorker

logger = get_logger(__name__)


async def run_worker() -> None:
    """Open the shared AWS clients and run one worker until signalled."""
    async with open_aws_clients() as clients:
        worker = EventWorker(
            queue=EventQueue(clients.sqs),
            repository=EventRepository(clients.dynamodb),
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, worker.stop)

        await worker.run()


def main() -> None:
    """Entry point for the worker console script."""
    configure_logging("worker")
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        logger.info("Event worker interrupted")


if __name__ == "__main__":
    main()
