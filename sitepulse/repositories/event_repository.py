"""Event repository for DynamoDB writes."""

from typing import Any, Dict, Optional

from sitepulse.config import settings
from sitepulse.models.event import StoredEvent
from sitepulse.repositories.base import BaseRepository


class EventRepository(BaseRepository):
    """
    Repository for persisted analytics events.

    Items are keyed by ``event_id`` (the originating job id), so saving the
    same job twice leaves a single item.
    """

    def __init__(self, dynamodb: Any) -> None:
        super().__init__(dynamodb, settings.dynamodb_table_events)

    async def save(self, event: StoredEvent) -> StoredEvent:
        """
        Persist an event, overwriting any earlier write of the same job.

        Args:
            event: StoredEvent to write

        Returns:
            The stored event

        Raises:
            PersistenceError: If DynamoDB rejects the write
        """
        # DynamoDB doesn't accept None attribute values
        item: Dict[str, Any] = event.model_dump(exclude_none=True)
        await self.put_item(item)
        return event

    async def get_by_id(self, event_id: str) -> Optional[StoredEvent]:
        """
        Get a persisted event by id.

        Args:
            event_id: Job id the event was written under

        Returns:
            StoredEvent if found, None otherwise
        """
        item = await self.get_item({"event_id": event_id})
        if item:
            return StoredEvent(**item)
        return None
