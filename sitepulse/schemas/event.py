"""Pydantic schemas for API requests and responses."""

from typing import List

from pydantic import BaseModel, Field

from sitepulse.models.event import PassThrough


class CreateEventRequest(BaseModel):
    """
    Request schema for ingesting an analytics event.

    Only ``site_id`` and ``event_type`` are validated here. ``path``,
    ``user_id`` and ``timestamp`` are passed through; the worker decides
    whether the timestamp is usable.
    """

    site_id: str = Field(
        ..., min_length=1, description="Site identifier (required)"
    )
    event_type: str = Field(
        ..., min_length=1, description="Event type, e.g. page_view (required)"
    )
    path: PassThrough = Field(None, description="URL path")
    user_id: PassThrough = Field(None, description="Visitor identifier")
    timestamp: PassThrough = Field(
        None, description="ISO 8601 string or epoch milliseconds"
    )

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "site_id": "s1",
                "event_type": "page_view",
                "path": "/pricing",
                "user_id": "u-42",
                "timestamp": "2024-01-01T10:00:00Z",
            }
        }


class EventAcceptedResponse(BaseModel):
    """Response returned once an event is durably queued."""

    status: str = Field("accepted", description="Operation status")
    message: str = Field("Event accepted", description="Human-readable message")
    job_id: str = Field(..., description="Queue job identifier")


class TopPath(BaseModel):
    """A path and its page view count."""

    path: str
    views: int


class StatsResponse(BaseModel):
    """
    Aggregated page view statistics for one site and UTC day.

    Attributes:
        site_id: Site the statistics belong to
        date: Calendar date (YYYY-MM-DD)
        total_views: Number of page_view events
        unique_users: Distinct user_id values among those events
        top_paths: Up to three most viewed paths, most viewed first
    """

    site_id: str
    date: str
    total_views: int
    unique_users: int
    top_paths: List[TopPath]

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "site_id": "s1",
                "date": "2024-01-01",
                "total_views": 2,
                "unique_users": 2,
                "top_paths": [{"path": "/a", "views": 2}],
            }
        }
