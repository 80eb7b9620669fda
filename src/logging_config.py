"""Logging setup: JSON lines for deployment, a readable format for development.

Records carry the id of the drill session being processed (set per request
or per replay through ``session_id_var``).
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

session_id_var: ContextVar[str] = ContextVar("session_id", default="")

# LogRecord attributes that are not user-supplied ``extra`` fields
RESERVED_ATTRS = {
    "args", "asctime", "created", "exc_info", "exc_text", "filename",
    "funcName", "levelname", "levelno", "lineno", "module", "msecs",
    "message", "msg", "name", "pathname", "process", "processName",
    "relativeCreated", "stack_info", "thread", "threadName", "taskName",
    "session_id",
}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        k: v for k, v in record.__dict__.items()
        if k not in RESERVED_ATTRS and not k.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        session_id = getattr(record, "session_id", "")
        if session_id:
            data["session_id"] = session_id
        if record.levelno >= logging.WARNING:
            data["location"] = {"file": record.filename, "line": record.lineno, "function": record.funcName}
        data.update(_extras(record))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class PrettyFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        session_id = getattr(record, "session_id", "")
        sid = f"[{session_id}] " if session_id else ""
        message = f"{timestamp} {color}{record.levelname:8}{self.RESET} {sid}{record.name}: {record.getMessage()}"

        extras = _extras(record)
        if extras:
            message += " | " + ", ".join(f"{k}={v}" for k, v in extras.items())
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class SessionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = session_id_var.get()
        return True


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure the root logger with one stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        json_format: Emit JSON lines instead of the readable format.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SessionFilter())
    handler.setFormatter(JSONFormatter() if json_format else PrettyFormatter())
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root.debug("Logging configured", extra={"level": level, "json_format": json_format})
