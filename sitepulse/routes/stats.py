"""API route for daily site statistics."""

from fastapi import APIRouter, Depends, Query, status

from sitepulse.dependencies import get_stats_service
from sitepulse.schemas.event import StatsResponse
from sitepulse.services.stats_service import StatsService

router = APIRouter(tags=["Stats"])


@router.get(
    "/stats",
    response_model=StatsResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Missing or invalid site_id / date",
            "content": {
                "application/json": {
                    "example": {
                        "status": "error",
                        "error_code": "VALIDATION_ERROR",
                        "message": "query.site_id: Field is required",
                        "details": {},
                    }
                }
            },
        },
        500: {
            "description": "Store query failed",
            "content": {
                "application/json": {
                    "example": {
                        "status": "error",
                        "error_code": "INTERNAL_ERROR",
                        "message": "Internal server error",
                        "details": {},
                    }
                }
            },
        },
    },
)
async def get_stats(
    site_id: str = Query(..., min_length=1, description="Site identifier"),
    date: str = Query(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="UTC calendar date (YYYY-MM-DD)",
    ),
    service: StatsService = Depends(get_stats_service),
) -> StatsResponse:
    """
    Page view statistics for one site on one UTC day.

    Counts page_view events with a timestamp between 00:00:00.000 and
    23:59:59.999 UTC on ``date``.
    """
    return await service.daily_stats(site_id, date)
