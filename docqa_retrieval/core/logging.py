"""Logging setup for the retrieval engine."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

_CONFIGURED = False

# Attributes present on every LogRecord; anything else came in through ``extra``.
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Configure the package root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...).
        log_format: "json" for structured output, anything else for plain text.
    """
    global _CONFIGURED

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root = logging.getLogger("docqa_retrieval")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
    root.propagate = False

    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger scoped under the package namespace."""
    if not name:
        return logging.getLogger("docqa_retrieval")
    if not name.startswith("docqa_retrieval"):
        name = f"docqa_retrieval.{name}"
    return logging.getLogger(name)


def is_configured() -> bool:
    """Whether setup_logging has been called in this process."""
    return _CONFIGURED
