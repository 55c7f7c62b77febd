"""Repository layer for DynamoDB operations."""

from sitepulse.repositories.event_repository import EventRepository
from sitepulse.repositories.stats_repository import StatsRepository

__all__ = ["EventRepository", "StatsRepository"]
