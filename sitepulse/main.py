"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from sitepulse.config import settings
from sitepulse.exceptions import AnalyticsAPIError
from sitepulse.handlers.exception_handler import (
    analytics_api_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from sitepulse.logging.config import configure_logging, get_logger
from sitepulse.middleware.logging import LoggingMiddleware
from sitepulse.middleware.request_validation import RequestSizeValidationMiddleware
from sitepulse.queue.event_queue import EventQueue
from sitepulse.repositories.base import open_aws_clients
from sitepulse.repositories.event_repository import EventRepository
from sitepulse.repositories.stats_repository import StatsRepository
from sitepulse.routes import events, stats, status
from sitepulse.worker.event_worker import EventWorker

# Configure logging before creating the app
configure_logging("api")

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Own the process-scoped AWS clients for the lifetime of the app.

    With ``run_worker_in_api`` the event worker runs as a background task
    and is drained before the clients close.
    """
    async with open_aws_clients() as clients:
        app.state.event_queue = EventQueue(clients.sqs)
        app.state.stats_repository = StatsRepository(clients.dynamodb)

        worker = None
        worker_task = None
        if settings.run_worker_in_api:
            worker = EventWorker(
                queue=app.state.event_queue,
                repository=EventRepository(clients.dynamodb),
            )
            worker_task = asyncio.create_task(worker.run())

        try:
            yield
        finally:
            if worker is not None:
                worker.stop()
                await worker_task


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
## SitePulse Analytics API

Collects website analytics events and serves daily per-site statistics.

### Event Lifecycle

1. **Ingest**: `POST /event` validates `site_id`/`event_type`, queues the
   event durably and answers `202` immediately
2. **Persist**: the event worker claims queued events and writes them to
   DynamoDB; failures are retried with backoff, then dead-lettered
3. **Query**: `GET /stats?site_id=...&date=YYYY-MM-DD` aggregates page views
   for one UTC day

Events are delivered at least once. Writes are keyed by job id, so a
redelivered event is not counted twice.
""",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Register middleware (last added = outermost layer)
app.add_middleware(RequestSizeValidationMiddleware)
app.add_middleware(LoggingMiddleware)

# Register exception handlers
app.add_exception_handler(AnalyticsAPIError, analytics_api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Register routers
app.include_router(events.router)
app.include_router(stats.router)
app.include_router(status.router)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """
    Root endpoint with API information.

    Returns:
        Dict with welcome message and docs link
    """
    return {
        "message": f"Welcome to {settings.api_title}",
        "version": settings.api_version,
        "docs": "/docs",
        "health": "/status",
    }
