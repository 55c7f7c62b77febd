"""Liveness endpoint."""

import time

from fastapi import APIRouter

from sitepulse.config import settings

_started_at = time.monotonic()

router = APIRouter(tags=["Health"])


@router.get("/status")
async def get_status() -> dict:
    """
    Report liveness without touching SQS or DynamoDB.

    ``worker`` is "embedded" when the event worker runs inside the API
    process and "external" when a separate ``sitepulse-worker`` drains the
    queue.
    """
    return {
        "status": "ok",
        "version": settings.api_version,
        "uptime_seconds": int(time.monotonic() - _started_at),
        "queue": settings.sqs_queue_name,
        "worker": "embedded" if settings.run_worker_in_api else "external",
    }
