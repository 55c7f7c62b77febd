"""Ingestion service: hands validated events to the durable queue."""

from sitepulse.logging.config import get_logger
from sitepulse.models.event import EventRecord
from sitepulse.queue.event_queue import EventQueue
from sitepulse.schemas.event import CreateEventRequest, EventAcceptedResponse

logger = get_logger(__name__)


class IngestService:
    """
    Accepts events for asynchronous persistence.

    The request is answered once the job is durably queued; persistence
    happens later in the event worker.
    """

    def __init__(self, queue: EventQueue) -> None:
        self.queue = queue

    async def ingest(self, request: CreateEventRequest) -> EventAcceptedResponse:
        """
        Queue an event.

        Args:
            request: Validated ingestion payload

        Returns:
            EventAcceptedResponse carrying the job id

        Raises:
            QueueUnavailableError: If the queue cannot accept the job
        """
        record = EventRecord(**request.model_dump())
        job_id = await self.queue.enqueue(record)

        logger.info(
            "Event accepted",
            extra={
                "context": {
                    "job_id": job_id,
                    "site_id": record.site_id,
                    "event_type": record.event_type,
                }
            },
        )
        return EventAcceptedResponse(job_id=job_id)
