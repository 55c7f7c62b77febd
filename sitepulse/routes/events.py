"""API route for event ingestion."""

from fastapi import APIRouter, Depends, status

from sitepulse.dependencies import get_ingest_service
from sitepulse.schemas.event import CreateEventRequest, EventAcceptedResponse
from sitepulse.services.ingest_service import IngestService

router = APIRouter(tags=["Events"])


@router.post(
    "/event",
    response_model=EventAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        202: {
            "description": "Event queued for asynchronous persistence",
            "content": {
                "application/json": {
                    "example": {
                        "status": "accepted",
                        "message": "Event accepted",
                        "job_id": "550e8400-e29b-41d4-a716-446655440000",
                    }
                }
            },
        },
        400: {
            "description": "Missing or empty site_id / event_type",
            "content": {
                "application/json": {
                    "example": {
                        "status": "error",
                        "error_code": "VALIDATION_ERROR",
                        "message": "site_id: Field is required",
                        "details": {
                            "validation_errors": [
                                {
                                    "field": "site_id",
                                    "message": "Field is required",
                                    "type": "missing",
                                }
                            ]
                        },
                    }
                }
            },
        },
        503: {
            "description": "Event queue unavailable",
            "content": {
                "application/json": {
                    "example": {
                        "status": "error",
                        "error_code": "SERVICE_UNAVAILABLE",
                        "message": "Event queue temporarily unavailable",
                        "details": {"retry_after": 30},
                    }
                }
            },
        },
    },
)
async def create_event(
    event_request: CreateEventRequest,
    service: IngestService = Depends(get_ingest_service),
) -> EventAcceptedResponse:
    """
    Accept an analytics event.

    The event is durably queued and the response is sent without waiting
    for persistence; the event worker writes it to the store later.

    Raises:
        QueueUnavailableError: If the queue cannot accept the event (503)
    """
    return await service.ingest(event_request)
