"""Event models shared by the queue, the worker and DynamoDB."""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from sitepulse.utils.timestamps import (
    format_storage_timestamp,
    parse_event_timestamp,
    utc_now,
)

# Ingestion passes these through as whatever JSON value the caller sent
PassThrough = Any


def as_text(value: Any) -> Optional[str]:
    """Store a pass-through field as a string; non-strings keep their JSON form."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


class EventRecord(BaseModel):
    """
    One occurrence of user activity on a tracked site.

    Attributes:
        site_id: Tenant/site identifier (non-empty)
        event_type: Type of event, e.g. "page_view" (non-empty)
        path: URL path the event pertains to
        user_id: Pseudonymous visitor identifier
        timestamp: Raw timestamp as received; interpreted by the worker
    """

    site_id: str = Field(..., min_length=1, description="Site identifier")
    event_type: str = Field(..., min_length=1, description="Event type")
    path: PassThrough = Field(None, description="URL path")
    user_id: PassThrough = Field(None, description="Visitor identifier")
    timestamp: PassThrough = Field(None, description="Raw event timestamp")


class QueuedJob(BaseModel):
    """
    An Event Record wrapped with queue metadata.

    ``job_id``, ``enqueued_at`` and ``record`` travel in the message body.
    ``receipt_handle`` and ``attempts`` are assigned by the queue when the
    job is claimed and identify the current lease.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str = Field(..., description="Producer-assigned job identifier")
    enqueued_at: str = Field(..., description="Storage-format enqueue time")
    record: EventRecord
    receipt_handle: Optional[str] = Field(
        None, description="Lease token of the current claim"
    )
    attempts: int = Field(1, ge=1, description="Deliveries so far")

    def envelope(self) -> Dict[str, Any]:
        """Body that is written to the queue."""
        return {
            "job_id": self.job_id,
            "enqueued_at": self.enqueued_at,
            "record": self.record.model_dump(),
        }


class StoredEvent(BaseModel):
    """
    Persisted form of an Event Record.

    ``event_id`` is the originating job id, so a redelivered job overwrites
    its earlier write instead of adding a second row.
    """

    event_id: str
    site_id: str
    event_type: str
    path: Optional[str] = None
    user_id: Optional[str] = None
    timestamp: str = Field(..., description="UTC, millisecond precision")
    received_at: str

    @classmethod
    def from_job(cls, job: QueuedJob) -> "StoredEvent":
        """
        Build the stored event for a claimed job.

        A missing timestamp falls back to the enqueue time.

        Raises:
            InvalidTimestampError: If the record carries a malformed timestamp
        """
        record = job.record
        raw = record.timestamp if record.timestamp is not None else job.enqueued_at
        moment: datetime = parse_event_timestamp(raw)
        return cls(
            event_id=job.job_id,
            site_id=record.site_id,
            event_type=record.event_type,
            path=as_text(record.path),
            user_id=as_text(record.user_id),
            timestamp=format_storage_timestamp(moment),
            received_at=format_storage_timestamp(utc_now()),
        )
