"""FastAPI dependencies resolving the process-scoped clients from app state."""

from fastapi import Request

from sitepulse.queue.event_queue import EventQueue
from sitepulse.repositories.stats_repository import StatsRepository
from sitepulse.services.ingest_service import IngestService
from sitepulse.services.stats_service import StatsService


def get_event_queue(request: Request) -> EventQueue:
    """Queue opened by the application lifespan."""
    return request.app.state.event_queue


def get_stats_repository(request: Request) -> StatsRepository:
    """Stats repository over the DynamoDB resource opened by the lifespan."""
    return request.app.state.stats_repository


def get_ingest_service(request: Request) -> IngestService:
    return IngestService(get_event_queue(request))


def get_stats_service(request: Request) -> StatsService:
    return StatsService(get_stats_repository(request))
