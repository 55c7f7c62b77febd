"""Request logging middleware with correlation ID support."""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sitepulse.logging.config import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Request-ID"


def get_or_generate_correlation_id(request: Request) -> str:
    """
    Correlation ID for ``request``.

    Prefers one already stored on the request state, then the incoming
    ``X-Request-ID`` header, then a fresh UUID.
    """
    existing = getattr(request.state, "correlation_id", None)
    if existing:
        return existing
    return request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line when a request starts and one when it ends.

    The correlation ID is stored on ``request.state`` for error bodies and
    echoed back in the ``X-Request-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = get_or_generate_correlation_id(request)
        request.state.correlation_id = correlation_id
        route = {"method": request.method, "path": request.url.path}

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "context": {
                    **route,
                    "query_params": dict(request.query_params),
                    "client_host": request.client.host if request.client else None,
                },
            },
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed with exception",
                exc_info=exc,
                extra={
                    "correlation_id": correlation_id,
                    "context": {**route, "response_time_ms": _elapsed_ms(started)},
                },
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "context": {
                    **route,
                    "status_code": response.status_code,
                    "response_time_ms": _elapsed_ms(started),
                },
            },
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
