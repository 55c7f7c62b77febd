"""Middleware components for request processing."""

from sitepulse.middleware.logging import LoggingMiddleware
from sitepulse.middleware.request_validation import RequestSizeValidationMiddleware

__all__ = [
    "LoggingMiddleware",
    "RequestSizeValidationMiddleware",
]
