"""Exception handlers rendering every failure in the same error body."""

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sitepulse.exceptions import AnalyticsAPIError, QueueUnavailableError
from sitepulse.logging.config import get_logger

logger = get_logger(__name__)

# Pydantic error types rewritten into messages a tracking snippet author can act on
VALIDATION_MESSAGES = {
    "missing": "Field is required",
    "string_too_short": "Field must not be empty",
    "json_invalid": "Request body is not valid JSON",
}

TRANSIENT_ERROR_TYPES = (ConnectionError, TimeoutError)
TRANSIENT_HINTS = ("connection", "timeout", "timed out", "unavailable")


def create_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
    correlation_id: str | None = None,
) -> JSONResponse:
    """
    Build ``{status, error_code, message, details[, correlation_id]}``.

    Args:
        error_code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status code
        details: Additional error details
        correlation_id: Request correlation ID, omitted when unknown
    """
    body: dict[str, Any] = {
        "status": "error",
        "error_code": error_code,
        "message": message,
        "details": details or {},
    }
    if correlation_id:
        body["correlation_id"] = correlation_id
    return JSONResponse(status_code=status_code, content=body)


def _correlation_id(request: Request) -> str | None:
    return getattr(request.state, "correlation_id", None)


def _field_name(loc: tuple) -> str:
    # "body" is implied for JSON payloads; query parameters keep their prefix
    parts = [str(part) for part in loc if part != "body"]
    return ".".join(parts) or "request"


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, TRANSIENT_ERROR_TYPES):
        return True
    text = f"{type(exc).__name__} {exc}".lower()
    return any(hint in text for hint in TRANSIENT_HINTS)


async def analytics_api_exception_handler(
    request: Request, exc: AnalyticsAPIError
) -> JSONResponse:
    """Render errors raised deliberately by routes, services and the queue."""
    response = create_error_response(
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        correlation_id=_correlation_id(request),
    )
    if isinstance(exc, QueueUnavailableError):
        response.headers["Retry-After"] = str(exc.retry_after)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Turn request validation failures into a 400.

    Covers missing or empty ``site_id``/``event_type``, bad query parameters
    on ``/stats`` and bodies that are not JSON. The summary message names
    the first failing field and counts the rest.
    """
    failures = []
    for error in exc.errors():
        error_type = error["type"]
        failures.append(
            {
                "field": _field_name(error["loc"]),
                "message": VALIDATION_MESSAGES.get(error_type, error["msg"]),
                "type": error_type,
            }
        )

    if failures:
        summary = f"{failures[0]['field']}: {failures[0]['message']}"
        if len(failures) > 1:
            summary += f" (and {len(failures) - 1} more errors)"
    else:
        summary = "Invalid request data"

    return create_error_response(
        error_code="VALIDATION_ERROR",
        message=summary,
        status_code=status.HTTP_400_BAD_REQUEST,
        details={"validation_errors": failures},
        correlation_id=_correlation_id(request),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for anything unexpected.

    The traceback goes to the log only. Callers get 503 when SQS or DynamoDB
    looked unreachable and a bare 500 otherwise.
    """
    correlation_id = _correlation_id(request)
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "correlation_id": correlation_id,
            "context": {
                "exception_type": type(exc).__name__,
                "method": request.method,
                "path": request.url.path,
            },
        },
    )

    if _is_transient(exc):
        return create_error_response(
            error_code="SERVICE_UNAVAILABLE",
            message="Service temporarily unavailable. Please try again later.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"retry_after": 60},
            correlation_id=correlation_id,
        )

    return create_error_response(
        error_code="INTERNAL_ERROR",
        message="Internal server error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        correlation_id=correlation_id,
    )
