"""
Logging setup for the edge router.

Text logging by default; JSON lines when EDGEHOST_LOG_FORMAT=json so edge
logs can be shipped to a collector. Request IDs attached by the router
middleware are emitted as a structured field.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# LogRecord attributes that are not user supplied "extra" fields
_RESERVED_FIELDS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "request_id",
    }
)


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON objects.

    Fields: timestamp (UTC, ISO 8601 with milliseconds), level, logger,
    message, request_id when present, source location, exception text and
    any extra attributes passed through ``extra=``.
    """

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: dict[str, Any] = {
            "timestamp": dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id:
            log_entry["request_id"] = request_id

        if record.pathname:
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_FIELDS and not key.startswith("_"):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def _build_handlers(formatter: logging.Formatter, log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            print(f"Warning: Could not open log file {log_file}: {e}", file=sys.stderr)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_structured_logging(level: str = "INFO", log_file: str | None = None, force: bool = True) -> None:
    """Configure the root logger for JSON output."""
    logging.basicConfig(
        level=level.upper(),
        handlers=_build_handlers(JSONFormatter(), log_file),
        force=force,
    )


def is_json_logging_enabled() -> bool:
    return os.getenv("EDGEHOST_LOG_FORMAT", "text").lower() == "json"


def setup_logging(level: str | None = None, log_file: str | None = None, force: bool = True) -> None:
    """
    Setup logging based on environment variables.

    Environment variables:
    - EDGEHOST_LOG_FORMAT: "json" or "text" (default: text)
    - EDGEHOST_LOG_LEVEL: Log level (default: INFO)
    - EDGEHOST_LOG_FILE: Optional log file path
    """
    if level is None:
        level = os.getenv("EDGEHOST_LOG_LEVEL", "INFO")
    if log_file is None:
        log_file = os.getenv("EDGEHOST_LOG_FILE")

    if is_json_logging_enabled():
        configure_structured_logging(level=level, log_file=log_file, force=force)
        return

    logging.basicConfig(
        level=level.upper(),
        handlers=_build_handlers(logging.Formatter(TEXT_FORMAT), log_file),
        force=force,
    )


class RequestLogger(logging.LoggerAdapter):
    """
    Logger adapter that stamps every record with a request ID.

    Usage:
        log = RequestLogger(logging.getLogger("edgehost.router"), "abc123")
        log.info("Proxying to %s", url)
    """

    def __init__(self, logger: logging.Logger, request_id: str):
        super().__init__(logger, {"request_id": request_id})
        self.request_id = request_id

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra["request_id"] = self.request_id
        kwargs["extra"] = extra
        return f"[{self.request_id}] {msg}", kwargs
