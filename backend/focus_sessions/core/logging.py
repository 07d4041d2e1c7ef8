"""Structured logging configuration for the focus session backend."""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName",
    "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName", "user_id", "event_type",
}

SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(user_id)s | "
    "%(name)s:%(funcName)s:%(lineno)d | %(message)s"
)


class SensitiveDataFilter(logging.Filter):
    """Filter to prevent logging credentials (the WebSocket token travels in the URL)."""

    SENSITIVE_KEYS = {
        "password",
        "token",
        "secret",
        "authorization",
        "access_token",
        "refresh_token",
        "jwt_secret_key",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, "msg"):
            record.msg = self._sanitize(record.msg)
        if hasattr(record, "args") and record.args:
            if isinstance(record.args, dict):
                record.args = self._sanitize(record.args)
            else:
                record.args = tuple(self._sanitize(arg) for arg in record.args)
        return True

    def _sanitize(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            return {
                k: "***REDACTED***" if str(k).lower() in self.SENSITIVE_KEYS else self._sanitize(v)
                for k, v in obj.items()
            }
        elif isinstance(obj, (list, tuple)):
            return type(obj)(self._sanitize(item) for item in obj)
        elif isinstance(obj, str):
            lower_str = obj.lower()
            for key in self.SENSITIVE_KEYS:
                if f"{key}=" in lower_str:
                    head = obj[: lower_str.index(f"{key}=") + len(key) + 1]
                    return f"{head}***REDACTED***"
            return obj
        return obj


class StructuredFormatter(logging.Formatter):
    """Text formatter that always has a user id column."""

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, "user_id", None):
            record.user_id = "-"
        if not hasattr(record, "event_type"):
            record.event_type = "general"
        return super().format(record)


class JsonFormatter(logging.Formatter):
    """JSON formatter for production log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "user_id": getattr(record, "user_id", None) or "-",
            "event_type": getattr(record, "event_type", "general"),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = "".join(
                traceback.format_exception(*record.exc_info)
            )

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format (for production)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.addFilter(SensitiveDataFilter())

    if json_logs:
        console_handler.setFormatter(JsonFormatter())
    else:
        console_handler.setFormatter(StructuredFormatter(TEXT_FORMAT))

    root_logger.addHandler(console_handler)

    # uvicorn logs request paths, and the socket path carries ?token=
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        if not any(isinstance(f, SensitiveDataFilter) for f in server_logger.filters):
            server_logger.addFilter(SensitiveDataFilter())

    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class SessionLogger:
    """
    Logger handed to the session core. Every line is tagged with the user it
    concerns; emitting is best effort and never raises into the caller.

    Args:
        name: underlying logger name
        enabled: when False, emit() is a no-op (used to mute session chatter)
        print_user_id: when False, the user column is rendered as "-"
        user_id: fallback user id for calls that do not pass one
    """

    def __init__(
        self,
        name: str = "focus_sessions.session",
        enabled: bool = True,
        print_user_id: bool = True,
        user_id: Optional[str] = None,
    ):
        self._logger = logging.getLogger(name)
        self.enabled = enabled
        self.print_user_id = print_user_id
        self.user_id = user_id

    def emit(
        self,
        message: str,
        user_id: Optional[str] = None,
        level: int = logging.INFO,
        **fields: Any,
    ) -> None:
        if not self.enabled:
            return

        tagged = user_id or self.user_id
        extra = dict(fields)
        extra["user_id"] = tagged if (tagged and self.print_user_id) else "-"
        try:
            self._logger.log(level, message, extra=extra)
        except Exception:
            # logging must not change control flow; a bad extra key or a
            # broken formatter loses the line, nothing more
            pass

    def warning(self, message: str, user_id: Optional[str] = None, **fields: Any) -> None:
        self.emit(message, user_id, level=logging.WARNING, **fields)

    def error(self, message: str, user_id: Optional[str] = None, **fields: Any) -> None:
        self.emit(message, user_id, level=logging.ERROR, **fields)
