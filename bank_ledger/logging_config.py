"""
Structured logging configuration.

Every ledger operation is logged as a single JSON line so that
log aggregators can filter on action and resource without
parsing free text.
"""

import json
import logging
from datetime import datetime, timezone

ROOT_LOGGER = "bank_ledger"


class JSONFormatter(logging.Formatter):
    """Render a log record as one JSON object."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "action": getattr(record, "action", None),
            "resource": getattr(record, "resource", None),
            "details": getattr(record, "details", None),
        }
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the application logger.

    Safe to call more than once; existing handlers are replaced
    rather than stacked.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Get a logger under the application namespace."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_action(
    logger: logging.Logger,
    level: str,
    message: str,
    action: str | None = None,
    resource: str | None = None,
    details: dict | None = None,
) -> None:
    """Log a message carrying structured action/resource fields."""
    logger.log(
        getattr(logging, level.upper()),
        message,
        extra={"action": action, "resource": resource, "details": details},
    )
