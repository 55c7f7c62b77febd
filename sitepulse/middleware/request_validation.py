"""Request size guard middleware."""

from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sitepulse.config import settings
from sitepulse.exceptions import RequestTooLargeError
from sitepulse.handlers.exception_handler import create_error_response
from sitepulse.middleware.logging import get_or_generate_correlation_id


class RequestSizeValidationMiddleware(BaseHTTPMiddleware):
    """
    Reject oversized requests before the body is parsed.

    Returns 413 Payload Too Large when Content-Length exceeds
    ``max_request_size_bytes``. The response is built here because
    exceptions raised in middleware bypass the app's exception handlers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = get_or_generate_correlation_id(request)
        request.state.correlation_id = correlation_id

        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            size = int(content_length)
            max_size = settings.max_request_size_bytes

            if size > max_size:
                max_kb = max_size / 1024
                exc = RequestTooLargeError(
                    message=f"Request size {size / 1024:.1f}KB exceeds maximum {max_kb:.0f}KB",
                    max_size=f"{max_kb:.0f}KB",
                )
                response = create_error_response(
                    error_code=exc.error_code,
                    message=exc.message,
                    status_code=exc.status_code,
                    details=exc.details,
                    correlation_id=correlation_id,
                )
                return response

        return await call_next(request)
