"""Logging configuration for the training archive service."""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Upload batch being processed by the current task
batch_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("batch_id", default=None)

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# Client libraries that are chatty at DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "google.auth", "urllib3")

_SEVERITIES = frozenset({logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL})


class CloudLoggingFormatter(logging.Formatter):
    """Single-line JSON formatter for structured log ingestion.

    Every entry carries the service name, the active ``batch_id`` and any
    fields passed with ``extra={...}``. Tracebacks are embedded as text.
    """

    def __init__(self, service: Optional[str] = None, version: Optional[str] = None):
        super().__init__()
        self.service = service
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname if record.levelno in _SEVERITIES else "DEFAULT",
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if self.service:
            log_entry["service"] = self.service
            log_entry["version"] = self.version

        batch_id = batch_id_context.get()
        if batch_id:
            log_entry["batch_id"] = batch_id

        log_entry.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES
        )

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
            log_entry["exception_type"] = exc_type.__name__ if exc_type else "Unknown"
            log_entry["exception_message"] = str(exc_value) if exc_value else ""

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> None:
    """Route all application and uvicorn logs to stdout.

    ``ENV=local`` gets readable text at DEBUG. Any other environment gets
    JSON lines at ``LOG_LEVEL``.
    """
    from trainarchive.core.config import settings

    local = settings.ENV == "local"
    log_level = logging.DEBUG if local else _resolve_level(settings.LOG_LEVEL)

    handler = logging.StreamHandler(sys.stdout)
    if local:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    else:
        handler.setFormatter(CloudLoggingFormatter(settings.SERVICE_NAME, settings.SERVICE_VERSION))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(log_level)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False

    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(log_level, logging.WARNING))
