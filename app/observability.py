"""
Logging setup for the breeding service.

Usage:
    from app.observability import configure_logging
    import logging

    configure_logging()
    logger = logging.getLogger(__name__)
    logger.info("Recorded insemination", extra={"extra_fields": {"cow_id": "COW-1"}})

Set LOG_JSON=1 for one JSON object per line, LOG_LEVEL for the threshold.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone


class StructuredFormatter(logging.Formatter):
    """JSON formatter; merges `extra_fields` passed through `extra=`."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Output format:
    2024-01-09 12:00:00 [INFO ] app.main [COW-1]: Recorded insemination
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = getattr(record, "extra_fields", {}) or {}
        cow = fields.get("cow_id") or "-"

        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        msg = f"{timestamp} [{record.levelname:5}] {record.name} [{cow}]: {record.getMessage()}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


_configured = False


def configure_logging(level=None, json_format=None):
    """
    Configure logging for the application. Safe to call more than once.

    Args:
        level: Logging level name or number (defaults to LOG_LEVEL or INFO)
        json_format: If True, use JSON format (defaults to LOG_JSON == "1")
    """
    global _configured

    if _configured:
        return

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if json_format is None:
        json_format = os.getenv("LOG_JSON", "0") == "1"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    logging.getLogger("app").setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
