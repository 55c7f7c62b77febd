"""Structured JSON logging shared by the API and the event worker."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from sitepulse.config import settings

# Third-party loggers that flood the output below INFO
_NOISY_LOGGERS = ("botocore", "aiobotocore", "urllib3")

_component = "api"


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Always carries timestamp, level, logger, component and message. A
    ``correlation_id`` passed in ``extra`` is kept as is and the keys of an
    ``extra={"context": {...}}`` dict are merged into the top level, so job
    ids and site ids can be filtered on directly.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": _component,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is not None:
            entry["correlation_id"] = correlation_id

        entry.update(getattr(record, "context", None) or {})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if record.levelno <= logging.DEBUG:
            entry.update(file=record.pathname, line=record.lineno, function=record.funcName)

        # Decimal counts from DynamoDB and datetimes fall back to str
        return json.dumps(entry, default=str)


def configure_logging(component: str = "api") -> None:
    """
    Route all logging to stdout as JSON at ``LOG_LEVEL``.

    Args:
        component: Process role stamped on every record ("api" or "worker")
    """
    global _component
    _component = component

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    root.info("Logging configured", extra={"context": {"log_level": logging.getLevelName(level)}})


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
