"""Event worker: drains the durable queue into DynamoDB."""

import asyncio

from sitepulse.config import settings
from sitepulse.exceptions import (
    InvalidTimestampError,
    PersistenceError,
    QueueUnavailableError,
)
from sitepulse.logging.config import get_logger
from sitepulse.models.event import QueuedJob, StoredEvent
from sitepulse.queue.event_queue import EventQueue
from sitepulse.repositories.event_repository import EventRepository

logger = get_logger(__name__)


def retry_delay_seconds(attempts: int) -> int:
    """
    Backoff before the next delivery of a job that failed ``attempts`` times.

    Doubles from ``retry_backoff_base_seconds`` and is capped at
    ``retry_backoff_max_seconds``.
    """
    exponent = max(attempts - 1, 0)
    delay = settings.retry_backoff_base_seconds * (2 ** min(exponent, 30))
    return min(delay, settings.retry_backoff_max_seconds)


class EventWorker:
    """
    Long-lived consumer of the analytics event queue.

    Each claimed job is parsed, written idempotently and acknowledged.
    Failed writes are released back to the queue with exponential backoff
    and moved to the dead-letter queue after ``worker_max_attempts``
    deliveries. Jobs with a malformed timestamp go straight to the
    dead-letter queue.
    """

    def __init__(
        self,
        queue: EventQueue,
        repository: EventRepository,
        batch_size: int | None = None,
        wait_seconds: int | None = None,
        max_attempts: int | None = None,
    ) -> None:
        """
        Initialize EventWorker.

        Args:
            queue: Durable queue to claim from
            repository: Store for processed events
            batch_size: Jobs claimed and processed concurrently
            wait_seconds: Long-poll duration of each claim
            max_attempts: Deliveries before a failing job is dead-lettered
        """
        self.queue = queue
        self.repository = repository
        self.batch_size = batch_size or settings.worker_batch_size
        self.wait_seconds = (
            settings.worker_wait_time_seconds if wait_seconds is None else wait_seconds
        )
        self.max_attempts = max_attempts or settings.worker_max_attempts
        self._stopping = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def stop(self) -> None:
        """Stop claiming new jobs; in-flight jobs are allowed to finish."""
        if not self._stopping.is_set():
            logger.info("Event worker stopping")
        self._stopping.set()

    async def run(self) -> None:
        """Claim and process jobs until ``stop()`` is called."""
        logger.info(
            "Event worker started",
            extra={
                "context": {
                    "queue": self.queue.queue_name,
                    "batch_size": self.batch_size,
                    "max_attempts": self.max_attempts,
                }
            },
        )
        while not self.stopping:
            try:
                await self.run_once()
            except QueueUnavailableError as e:
                logger.warning(
                    "Queue unavailable, backing off",
                    exc_info=e,
                    extra={"context": {"backoff_seconds": settings.worker_idle_backoff_seconds}},
                )
                await self._sleep(settings.worker_idle_backoff_seconds)
            except Exception as e:
                # One bad batch must not end the loop
                logger.error(
                    "Event worker iteration failed, backing off",
                    exc_info=e,
                    extra={"context": {"backoff_seconds": settings.worker_idle_backoff_seconds}},
                )
                await self._sleep(settings.worker_idle_backoff_seconds)
        logger.info("Event worker stopped")

    async def run_once(self) -> int:
        """
        Claim one batch and process it.

        Jobs claimed while a stop was requested are released untouched.

        Returns:
            Number of jobs processed

        Raises:
            QueueUnavailableError: If the claim itself fails
        """
        jobs = await self.queue.claim(
            max_jobs=self.batch_size, wait_seconds=self.wait_seconds
        )
        if not jobs:
            return 0

        if self.stopping:
            await self._release_unstarted(jobs)
            return 0

        await asyncio.gather(*(self.process(job) for job in jobs))
        return len(jobs)

    async def process(self, job: QueuedJob) -> None:
        """
        Persist one job and settle it with the queue.

        Never raises; every outcome is logged and the job is either
        acknowledged, released for retry or dead-lettered.
        """
        context = {
            "job_id": job.job_id,
            "site_id": job.record.site_id,
            "attempts": job.attempts,
        }
        try:
            event = StoredEvent.from_job(job)
        except InvalidTimestampError as e:
            logger.error(
                "Event has an unparsable timestamp, dead-lettering",
                extra={"context": {**context, "timestamp": repr(e.value)}},
            )
            await self._dead_letter(job, str(e), context)
            return
        except Exception as e:
            await self._handle_failure(job, e, context)
            return

        try:
            await self.repository.save(event)
        except Exception as e:
            await self._handle_failure(job, e, context)
            return

        try:
            await self.queue.acknowledge(job)
        except QueueUnavailableError as e:
            # The write is keyed by job id, so the redelivery is harmless
            logger.warning(
                "Acknowledge failed, job will be redelivered",
                exc_info=e,
                extra={"context": context},
            )
            return

        logger.info("Event persisted", extra={"context": context})

    async def _handle_failure(self, job: QueuedJob, exc: Exception, context: dict) -> None:
        failure = "persistence" if isinstance(exc, PersistenceError) else type(exc).__name__
        if job.attempts >= self.max_attempts:
            logger.error(
                "Event failed on final attempt, dead-lettering",
                exc_info=exc,
                extra={"context": {**context, "failure": failure}},
            )
            await self._dead_letter(job, f"{failure}: {exc}", context)
            return

        delay = retry_delay_seconds(job.attempts)
        logger.error(
            "Event processing failed, releasing for retry",
            exc_info=exc,
            extra={"context": {**context, "failure": failure, "retry_in_seconds": delay}},
        )
        await self._release(job, delay, context)

    async def _dead_letter(self, job: QueuedJob, reason: str, context: dict) -> None:
        try:
            await self.queue.dead_letter(job, reason)
        except QueueUnavailableError as e:
            logger.error(
                "Dead-lettering failed, releasing for retry",
                exc_info=e,
                extra={"context": context},
            )
            await self._release(job, retry_delay_seconds(job.attempts), context)
            return
        logger.warning(
            "Event dead-lettered",
            extra={"context": {**context, "reason": reason}},
        )

    async def _release(self, job: QueuedJob, delay: int, context: dict) -> None:
        try:
            await self.queue.release(job, delay_seconds=delay)
        except QueueUnavailableError as e:
            logger.warning(
                "Release failed, job returns when its lease expires",
                exc_info=e,
                extra={"context": context},
            )

    async def _release_unstarted(self, jobs: list[QueuedJob]) -> None:
        for job in jobs:
            await self._release(job, 0, {"job_id": job.job_id})

    async def _sleep(self, seconds: float) -> None:
        # Wakes early when stop() is called
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
