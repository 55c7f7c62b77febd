"""Error response format tests for the exception handlers."""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from sitepulse.exceptions import (
    InvalidRequestError,
    QueryFailedError,
    QueueUnavailableError,
    RequestTooLargeError,
)
from sitepulse.handlers.exception_handler import (
    analytics_api_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)


@pytest.fixture
def mock_request():
    """Create mock request carrying a correlation ID."""
    request = AsyncMock(spec=Request)
    request.state.correlation_id = "test-correlation-id"
    request.method = "POST"
    request.url.path = "/event"
    return request


@pytest.mark.asyncio
async def test_validation_error_includes_correlation_id(mock_request) -> None:
    """Test that validation errors include correlation ID."""
    exc = RequestValidationError(
        errors=[{"loc": ("body", "site_id"), "msg": "Field required", "type": "missing"}]
    )

    response = await validation_exception_handler(mock_request, exc)

    assert response.status_code == 400
    data = json.loads(response.body)
    assert data["status"] == "error"
    assert data["correlation_id"] == "test-correlation-id"
    assert data["error_code"] == "VALIDATION_ERROR"
    assert data["message"] == "site_id: Field is required"


@pytest.mark.asyncio
async def test_validation_error_with_multiple_fields(mock_request) -> None:
    """Test that multiple failures are summarized and listed per field."""
    exc = RequestValidationError(
        errors=[
            {"loc": ("body", "site_id"), "msg": "Field required", "type": "missing"},
            {
                "loc": ("body", "event_type"),
                "msg": "String should have at least 1 character",
                "type": "string_too_short",
            },
        ]
    )

    response = await validation_exception_handler(mock_request, exc)

    data = json.loads(response.body)
    assert data["message"] == "site_id: Field is required (and 1 more errors)"
    validation_errors = data["details"]["validation_errors"]
    assert [e["field"] for e in validation_errors] == ["site_id", "event_type"]
    assert validation_errors[1]["message"] == "Field must not be empty"
    # Field should not include 'body' prefix
    assert not any(e["field"].startswith("body") for e in validation_errors)


@pytest.mark.asyncio
async def test_validation_error_for_query_parameter(mock_request) -> None:
    exc = RequestValidationError(
        errors=[{"loc": ("query", "date"), "msg": "Field required", "type": "missing"}]
    )

    response = await validation_exception_handler(mock_request, exc)

    data = json.loads(response.body)
    assert data["details"]["validation_errors"][0]["field"] == "query.date"


@pytest.mark.asyncio
async def test_invalid_json_body_message(mock_request) -> None:
    exc = RequestValidationError(
        errors=[{"loc": ("body", 31), "msg": "JSON decode error", "type": "json_invalid"}]
    )

    response = await validation_exception_handler(mock_request, exc)

    data = json.loads(response.body)
    assert response.status_code == 400
    assert data["details"]["validation_errors"][0]["message"] == "Request body is not valid JSON"


@pytest.mark.asyncio
async def test_invalid_request_error_is_400(mock_request) -> None:
    exc = InvalidRequestError(message="date must be a valid YYYY-MM-DD calendar date")

    response = await analytics_api_exception_handler(mock_request, exc)

    assert response.status_code == 400
    body = json.loads(response.body)
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["message"] == "date must be a valid YYYY-MM-DD calendar date"


@pytest.mark.asyncio
async def test_queue_unavailable_includes_retry_after_header(mock_request) -> None:
    """Test that queue outages advertise when to retry."""
    exc = QueueUnavailableError(retry_after=45)

    response = await analytics_api_exception_handler(mock_request, exc)

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "45"
    body = json.loads(response.body)
    assert body["error_code"] == "SERVICE_UNAVAILABLE"
    assert body["correlation_id"] == "test-correlation-id"
    assert body["details"]["retry_after"] == 45


@pytest.mark.asyncio
async def test_query_failed_is_generic_500(mock_request) -> None:
    response = await analytics_api_exception_handler(mock_request, QueryFailedError())

    assert response.status_code == 500
    body = json.loads(response.body)
    assert body["error_code"] == "INTERNAL_ERROR"
    assert body["message"] == "Internal server error"
    assert body["details"] == {}


@pytest.mark.asyncio
async def test_request_too_large_error(mock_request) -> None:
    """Test that RequestTooLargeError returns proper 413 response."""
    exc = RequestTooLargeError(
        message="Request size 80.0KB exceeds maximum 64KB",
        max_size="64KB",
    )

    response = await analytics_api_exception_handler(mock_request, exc)

    assert response.status_code == 413
    data = json.loads(response.body)
    assert data["error_code"] == "PAYLOAD_TOO_LARGE"
    assert data["details"]["max_size"] == "64KB"


@pytest.mark.asyncio
async def test_connection_error_returns_503(mock_request) -> None:
    """Test that connection trouble with AWS is reported as 503."""
    exc = ConnectionError("Unable to connect to SQS")

    response = await generic_exception_handler(mock_request, exc)

    assert response.status_code == 503
    body = json.loads(response.body)
    assert body["error_code"] == "SERVICE_UNAVAILABLE"
    assert "retry_after" in body["details"]


@pytest.mark.asyncio
async def test_timeout_returns_503(mock_request) -> None:
    response = await generic_exception_handler(
        mock_request, TimeoutError("DynamoDB request timed out")
    )

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_unexpected_error_hides_details(mock_request) -> None:
    """Test that internal errors never leak exception text."""
    exc = ValueError("secret table name analytics-events")

    response = await generic_exception_handler(mock_request, exc)

    assert response.status_code == 500
    body = json.loads(response.body)
    assert body["error_code"] == "INTERNAL_ERROR"
    assert body["message"] == "Internal server error"
    assert "analytics-events" not in response.body.decode()
    assert body["correlation_id"] == "test-correlation-id"


@pytest.mark.asyncio
async def test_error_response_without_correlation_id() -> None:
    """Test that errors work even without correlation ID."""
    request = AsyncMock(spec=Request)
    request.state = AsyncMock()
    type(request.state).correlation_id = property(lambda self: None)

    response = await analytics_api_exception_handler(request, InvalidRequestError())

    assert response.status_code == 400
    body = json.loads(response.body)
    assert "correlation_id" not in body
