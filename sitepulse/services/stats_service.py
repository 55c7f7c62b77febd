"""Statistics service computing per-site daily page view aggregates."""

import asyncio

from sitepulse.exceptions import InvalidRequestError, QueryFailedError
from sitepulse.logging.config import get_logger
from sitepulse.repositories.stats_repository import StatsRepository
from sitepulse.schemas.event import StatsResponse, TopPath
from sitepulse.utils.timestamps import day_window, parse_calendar_date

logger = get_logger(__name__)

TOP_PATHS_LIMIT = 3


class StatsService:
    """
    Service layer for the statistics endpoint.

    Runs the three aggregate queries concurrently over the inclusive UTC day
    window and assembles the response. Either all three succeed or the
    caller gets a QueryFailedError; partial results are never returned.
    """

    def __init__(self, repository: StatsRepository) -> None:
        self.repository = repository

    async def daily_stats(self, site_id: str, date: str) -> StatsResponse:
        """
        Aggregate page views of ``site_id`` on ``date``.

        Args:
            site_id: Site identifier
            date: Calendar date in YYYY-MM-DD format

        Returns:
            StatsResponse for the site and day

        Raises:
            InvalidRequestError: If ``date`` is not a real YYYY-MM-DD date
            QueryFailedError: If any store query fails
        """
        try:
            day = parse_calendar_date(date)
        except ValueError as e:
            raise InvalidRequestError(
                message="date must be a valid YYYY-MM-DD calendar date",
                details={"field": "date"},
            ) from e

        start, end = day_window(day)

        try:
            total_views, unique_users, top_paths = await asyncio.gather(
                self.repository.count_page_views(site_id, start, end),
                self.repository.count_unique_users(site_id, start, end),
                self.repository.top_paths(site_id, start, end, limit=TOP_PATHS_LIMIT),
            )
        except Exception as e:
            logger.error(
                "Stats query failed",
                exc_info=e,
                extra={"context": {"site_id": site_id, "date": date}},
            )
            raise QueryFailedError() from e

        return StatsResponse(
            site_id=site_id,
            date=date,
            total_views=total_views,
            unique_users=unique_users,
            top_paths=[TopPath(path=path, views=views) for path, views in top_paths],
        )
