"""Data models for the SitePulse analytics service."""

from sitepulse.models.event import EventRecord, QueuedJob, StoredEvent

__all__ = ["EventRecord", "QueuedJob", "StoredEvent"]
