"""SQS-backed durable queue for analytics events."""

import json
import uuid
from typing import Any, Optional

from sitepulse.config import settings
from sitepulse.exceptions import QueueUnavailableError
from sitepulse.logging.config import get_logger
from sitepulse.models.event import EventRecord, QueuedJob
from sitepulse.repositories.base import AWS_ERRORS
from sitepulse.utils.timestamps import format_storage_timestamp, utc_now

logger = get_logger(__name__)

# SQS hard limits
MAX_RECEIVE_BATCH = 10
MAX_WAIT_SECONDS = 20
MAX_VISIBILITY_SECONDS = 12 * 60 * 60


class EventQueue:
    """
    Durable at-least-once queue on Amazon SQS.

    A claim is an SQS receive: the message becomes invisible to other
    consumers for the visibility timeout (the lease). Acknowledging deletes
    the message; releasing resets its visibility so it can be claimed again,
    and SQS bumps ApproximateReceiveCount on every delivery. Jobs that must
    not be retried are copied to a dead-letter queue before being deleted.
    """

    def __init__(
        self,
        sqs: Any,
        queue_name: str | None = None,
        dead_letter_queue_name: str | None = None,
    ) -> None:
        """
        Initialize EventQueue.

        Args:
            sqs: Open aioboto3 SQS client
            queue_name: Main queue name (defaults to settings)
            dead_letter_queue_name: Dead-letter queue name (defaults to settings)
        """
        self.sqs = sqs
        self.queue_name = queue_name or settings.sqs_queue_name
        self.dead_letter_queue_name = (
            dead_letter_queue_name or settings.sqs_dead_letter_queue_name
        )
        self._urls: dict[str, str] = {}

    async def _queue_url(self, name: str) -> str:
        if name not in self._urls:
            response = await self.sqs.get_queue_url(QueueName=name)
            self._urls[name] = response["QueueUrl"]
        return self._urls[name]

    async def enqueue(self, record: EventRecord) -> str:
        """
        Durably add an event to the queue.

        Returns as soon as SQS has stored the message, not once processed.

        Args:
            record: Validated event record

        Returns:
            The new job id

        Raises:
            QueueUnavailableError: If SQS cannot be reached or rejects the send
        """
        job = QueuedJob(
            job_id=str(uuid.uuid4()),
            enqueued_at=format_storage_timestamp(utc_now()),
            record=record,
        )
        try:
            url = await self._queue_url(self.queue_name)
            await self.sqs.send_message(
                QueueUrl=url,
                MessageBody=json.dumps(job.envelope()),
            )
        except AWS_ERRORS as e:
            logger.error(
                "Failed to enqueue event",
                exc_info=e,
                extra={"context": {"queue": self.queue_name, "site_id": record.site_id}},
            )
            raise QueueUnavailableError() from e

        logger.debug(
            "Event enqueued",
            extra={"context": {"job_id": job.job_id, "site_id": record.site_id}},
        )
        return job.job_id

    async def claim(
        self, max_jobs: int = 1, wait_seconds: int = 0
    ) -> list[QueuedJob]:
        """
        Claim up to ``max_jobs`` jobs, waiting at most ``wait_seconds``.

        Claimed jobs stay invisible to other consumers for the configured
        visibility timeout unless acknowledged or released first.

        Returns:
            Claimed jobs; empty if none became available in time

        Raises:
            QueueUnavailableError: If SQS cannot be reached
        """
        try:
            url = await self._queue_url(self.queue_name)
            response = await self.sqs.receive_message(
                QueueUrl=url,
                MaxNumberOfMessages=max(1, min(max_jobs, MAX_RECEIVE_BATCH)),
                WaitTimeSeconds=max(0, min(wait_seconds, MAX_WAIT_SECONDS)),
                VisibilityTimeout=settings.worker_visibility_timeout_seconds,
                AttributeNames=["ApproximateReceiveCount"],
            )
        except AWS_ERRORS as e:
            raise QueueUnavailableError() from e

        jobs = []
        for message in response.get("Messages", []):
            job = self._decode(message)
            if job is not None:
                jobs.append(job)
                continue
            try:
                await self._dead_letter_raw(message)
            except QueueUnavailableError as e:
                # Left leased; it comes back once the visibility timeout expires
                logger.error(
                    "Parking undecodable message failed",
                    exc_info=e,
                    extra={"context": {"message_id": message.get("MessageId")}},
                )
        return jobs

    def _decode(self, message: dict[str, Any]) -> Optional[QueuedJob]:
        attempts = int(message.get("Attributes", {}).get("ApproximateReceiveCount", 1))
        try:
            body = json.loads(message["Body"])
            return QueuedJob(
                **body,
                receipt_handle=message["ReceiptHandle"],
                attempts=max(attempts, 1),
            )
        except (ValueError, TypeError) as e:
            logger.error(
                "Undecodable queue message",
                exc_info=e,
                extra={"context": {"message_id": message.get("MessageId")}},
            )
            return None

    async def _dead_letter_raw(self, message: dict[str, Any]) -> None:
        """Park a message that is not a valid job envelope."""
        body = {
            "raw_body": message.get("Body"),
            "failure": {
                "reason": "undecodable job envelope",
                "dead_lettered_at": format_storage_timestamp(utc_now()),
            },
        }
        try:
            dlq_url = await self._queue_url(self.dead_letter_queue_name)
            await self.sqs.send_message(QueueUrl=dlq_url, MessageBody=json.dumps(body))
            url = await self._queue_url(self.queue_name)
            await self.sqs.delete_message(QueueUrl=url, ReceiptHandle=message["ReceiptHandle"])
        except AWS_ERRORS as e:
            raise QueueUnavailableError() from e

    async def acknowledge(self, job: QueuedJob) -> None:
        """
        Permanently remove a claimed job.

        Raises:
            QueueUnavailableError: If SQS cannot be reached
        """
        try:
            url = await self._queue_url(self.queue_name)
            await self.sqs.delete_message(QueueUrl=url, ReceiptHandle=job.receipt_handle)
        except AWS_ERRORS as e:
            raise QueueUnavailableError() from e

    async def release(self, job: QueuedJob, delay_seconds: int = 0) -> None:
        """
        Return a claimed job to the queue after ``delay_seconds``.

        Raises:
            QueueUnavailableError: If SQS cannot be reached
        """
        try:
            url = await self._queue_url(self.queue_name)
            await self.sqs.change_message_visibility(
                QueueUrl=url,
                ReceiptHandle=job.receipt_handle,
                VisibilityTimeout=max(0, min(delay_seconds, MAX_VISIBILITY_SECONDS)),
            )
        except AWS_ERRORS as e:
            raise QueueUnavailableError() from e

    async def dead_letter(self, job: QueuedJob, reason: str) -> None:
        """
        Move a job to the dead-letter queue with its failure reason.

        The job is only deleted from the main queue after the dead-letter
        copy has been stored.

        Raises:
            QueueUnavailableError: If either queue cannot be reached
        """
        body = job.envelope()
        body["failure"] = {
            "reason": reason,
            "attempts": job.attempts,
            "dead_lettered_at": format_storage_timestamp(utc_now()),
        }
        try:
            dlq_url = await self._queue_url(self.dead_letter_queue_name)
            await self.sqs.send_message(QueueUrl=dlq_url, MessageBody=json.dumps(body))
        except AWS_ERRORS as e:
            raise QueueUnavailableError() from e
        await self.acknowledge(job)

    async def list_dead_letters(self, max_jobs: int = MAX_RECEIVE_BATCH) -> list[dict[str, Any]]:
        """
        Peek at dead-lettered jobs without consuming them.

        Messages are received with a zero visibility timeout so they stay
        available.
        """
        try:
            url = await self._queue_url(self.dead_letter_queue_name)
            response = await self.sqs.receive_message(
                QueueUrl=url,
                MaxNumberOfMessages=max(1, min(max_jobs, MAX_RECEIVE_BATCH)),
                VisibilityTimeout=0,
            )
        except AWS_ERRORS as e:
            raise QueueUnavailableError() from e
        return [json.loads(message["Body"]) for message in response.get("Messages", [])]

    async def redrive_dead_letters(self, max_jobs: int = MAX_RECEIVE_BATCH) -> int:
        """
        Move dead-lettered jobs back to the main queue under their job ids.

        Returns:
            Number of jobs moved
        """
        try:
            dlq_url = await self._queue_url(self.dead_letter_queue_name)
            url = await self._queue_url(self.queue_name)
            response = await self.sqs.receive_message(
                QueueUrl=dlq_url,
                MaxNumberOfMessages=max(1, min(max_jobs, MAX_RECEIVE_BATCH)),
                VisibilityTimeout=settings.worker_visibility_timeout_seconds,
            )
            moved = 0
            for message in response.get("Messages", []):
                body = json.loads(message["Body"])
                if "job_id" not in body:
                    # Raw undecodable payloads would only bounce back here
                    continue
                body.pop("failure", None)
                await self.sqs.send_message(QueueUrl=url, MessageBody=json.dumps(body))
                await self.sqs.delete_message(
                    QueueUrl=dlq_url, ReceiptHandle=message["ReceiptHandle"]
                )
                moved += 1
        except AWS_ERRORS as e:
            raise QueueUnavailableError() from e

        logger.info("Dead letters redriven", extra={"context": {"count": moved}})
        return moved
