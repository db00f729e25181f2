"""
Logging Configuration

JSON lines in production, a human-readable format everywhere else.

Context travels in `extra=`: any of CONTEXT_FIELDS passed that way is
copied into the JSON line, so tenant ids, request paths and harness suite
names stay queryable.
"""
import logging
import sys
from typing import Any, Dict
import json
from datetime import datetime, timezone

CONTEXT_FIELDS = (
    "tenant_id",
    "event_id",
    "action",
    "method",
    "path",
    "client",
    "status_code",
    "duration_ms",
    "suite",
    "security_event",
    "event_type",
    "details",
)

# Libraries that log every request on their own
QUIET_LOGGERS = ("uvicorn.access", "httpx")

DEV_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        log_data.update(
            (field, getattr(record, field)) for field in CONTEXT_FIELDS if hasattr(record, field)
        )

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Timestamps and paths in extras are not always JSON-native
        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of the development format

    Safe to call more than once (the service and the harness CLI both
    call it); earlier handlers are replaced.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_security_event(event_type: str, details: Dict[str, Any], logger: logging.Logger) -> None:
    """
    Log an admin-authentication event at WARNING.

    Event types:
    - failed_login: Wrong admin password
    - invalid_token: Admin request with a bad or expired token
    """
    logger.warning(
        f"SECURITY EVENT: {event_type}",
        extra={"security_event": True, "event_type": event_type, "details": details}
    )
