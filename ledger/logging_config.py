"""
Structured logging configuration.

setup_logging() is called once at application startup. It attaches a single
stream handler to the "ledger" logger; module loggers created with
logging.getLogger(__name__) inside the package inherit it.

The request id of the HTTP request being served lives in `request_id_var`.
The middleware in main.py sets it, and JSONFormatter stamps it on every line
so all log output for one request can be grouped.
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone


request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Attributes that callers may pass through `extra=` and that end up as
# top-level keys in the JSON line
_EXTRA_FIELDS = ("operation", "took_us", "error", "error_type", "context")


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None) or request_id_var.get(),
        }
        for field in _EXTRA_FIELDS:
            log_entry[field] = getattr(record, field, None)

        # Drop empty keys
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", json_output: bool = True) -> logging.Logger:
    """
    Configure the "ledger" logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: JSON lines when True, plain text otherwise.

    Returns:
        The configured "ledger" logger.
    """
    logger = logging.getLogger("ledger")

    # Remove existing handlers so repeated startups do not duplicate lines
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger
