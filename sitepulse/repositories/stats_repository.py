"""Read-side DynamoDB queries backing the statistics endpoint."""

from collections import Counter
from typing import Any

from boto3.dynamodb.conditions import Attr, Key

from sitepulse.config import settings
from sitepulse.repositories.base import BaseRepository

SITE_TIMESTAMP_INDEX = "SiteTimestampIndex"
PAGE_VIEW = "page_view"


class StatsRepository(BaseRepository):
    """
    Aggregation queries over page views of one site in a time window.

    Every query goes through the ``SiteTimestampIndex`` GSI (``site_id``
    hash key, ``timestamp`` range key) with an inclusive BETWEEN on the
    storage-format bounds and a filter on ``event_type``. DynamoDB has no
    GROUP BY, so grouping happens over the projected attribute.
    """

    def __init__(self, dynamodb: Any) -> None:
        super().__init__(dynamodb, settings.dynamodb_table_events)

    def _page_view_query(self, site_id: str, start: str, end: str) -> dict[str, Any]:
        return {
            "IndexName": SITE_TIMESTAMP_INDEX,
            "KeyConditionExpression": (
                Key("site_id").eq(site_id) & Key("timestamp").between(start, end)
            ),
            "FilterExpression": Attr("event_type").eq(PAGE_VIEW),
        }

    async def count_page_views(self, site_id: str, start: str, end: str) -> int:
        """Count page views of ``site_id`` with ``start <= timestamp <= end``."""
        params = self._page_view_query(site_id, start, end)
        params["Select"] = "COUNT"
        pages = await self.query_all(**params)
        return sum(int(page.get("Count", 0)) for page in pages)

    async def count_unique_users(self, site_id: str, start: str, end: str) -> int:
        """Count distinct ``user_id`` values; events without one are skipped."""
        params = self._page_view_query(site_id, start, end)
        params["ProjectionExpression"] = "user_id"
        pages = await self.query_all(**params)
        users = {
            item["user_id"]
            for page in pages
            for item in page.get("Items", [])
            if item.get("user_id") is not None
        }
        return len(users)

    async def top_paths(
        self, site_id: str, start: str, end: str, limit: int = 3
    ) -> list[tuple[str, int]]:
        """
        Most viewed paths, by view count descending then path ascending.

        Events without a path are skipped.

        Returns:
            Up to ``limit`` (path, views) pairs
        """
        params = self._page_view_query(site_id, start, end)
        # PATH is a DynamoDB reserved word
        params["ProjectionExpression"] = "#path"
        params["ExpressionAttributeNames"] = {"#path": "path"}
        pages = await self.query_all(**params)
        counts = Counter(
            item["path"]
            for page in pages
            for item in page.get("Items", [])
            if item.get("path") is not None
        )
        ranked = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
        return ranked[:limit]
