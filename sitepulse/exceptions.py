"""Exceptions raised by the SitePulse API, queue and worker."""

from typing import Any


class AnalyticsAPIError(Exception):
    """
    Error that is reported to API callers.

    Subclasses fix the HTTP status and machine-readable code; the
    exception handler renders ``message`` and ``details`` into the
    standard error body.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class InvalidRequestError(AnalyticsAPIError):
    """Caller input is missing or malformed (400)."""

    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid request data"


class RequestTooLargeError(AnalyticsAPIError):
    """Request body exceeds ``max_request_size_bytes`` (413)."""

    status_code = 413
    error_code = "PAYLOAD_TOO_LARGE"
    default_message = "Request payload too large"

    def __init__(
        self,
        message: str | None = None,
        max_size: str = "64KB",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, {**(details or {}), "max_size": max_size})


class QueueUnavailableError(AnalyticsAPIError):
    """
    The durable queue cannot accept or hand out jobs (503).

    Ingestion surfaces it to the caller with a ``Retry-After`` header;
    the worker backs off and claims again.
    """

    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"
    default_message = "Event queue temporarily unavailable"

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 30,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, {**(details or {}), "retry_after": retry_after})
        self.retry_after = retry_after


class QueryFailedError(AnalyticsAPIError):
    """An aggregation query failed; callers only see a generic 500."""


class PersistenceError(Exception):
    """The store rejected or could not complete a write."""


class InvalidTimestampError(ValueError):
    """An event timestamp cannot be interpreted as an instant."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"Unparsable event timestamp: {value!r}")
        self.value = value
