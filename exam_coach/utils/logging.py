"""Logging utilities for the Exam Coach System.

Every record is stamped with the id of the exam session that produced it,
so the lines of one session can be pulled out of a shared log file.
"""

import json
import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

PACKAGE_LOGGER = "exam_coach"

# Exam session bound to the current task
session_id_var: ContextVar[str] = ContextVar("session_id", default="")

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "session_id"}

_NOISY_LOGGERS = ("asyncio", "aiohttp", "urllib3")


class SessionContextFilter(logging.Filter):
    """Copy the bound session id onto each record."""

    def filter(self, record):
        record.session_id = session_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, extras included."""

    def format(self, record):
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "session_id": getattr(record, "session_id", ""),
            "message": record.getMessage(),
        }
        entry.update({key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Compact single-line format for terminals."""

    def format(self, record):
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        session = getattr(record, "session_id", "")
        tag = f"[{session[:8]}] " if session else ""
        name = record.name[len(PACKAGE_LOGGER) + 1:] if record.name.startswith(PACKAGE_LOGGER + ".") else record.name

        line = f"{timestamp} {record.levelname:<7} {name:<22} {tag}{record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    structured: bool = False,
    enable_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Configure the root logger, replacing any handlers already installed.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating log file to write to, if any
        structured: Write JSON lines instead of the console format
        enable_console: Log to stdout
        max_file_size: Size in bytes at which the log file rotates
        backup_count: Rotated files to keep
    """
    formatter: logging.Formatter = JsonFormatter() if structured else ConsoleFormatter()
    handlers: List[logging.Handler] = []

    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8",
        ))

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(level.upper())

    session_filter = SessionContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(session_filter)
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger("logging").debug("Logging configured", extra={
        "level": level,
        "log_file": log_file,
        "structured": structured,
    })


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def bind_session(session_id: str) -> None:
    """Tag subsequent records from this task with ``session_id``."""
    session_id_var.set(session_id)


def current_session_id() -> str:
    return session_id_var.get()


def log_performance(operation: str, duration: float, details: Optional[Dict[str, Any]] = None) -> None:
    """Record how long an operation took, in seconds."""
    extra: Dict[str, Any] = dict(details or {})
    extra.update(operation=operation, duration_seconds=round(duration, 3))
    get_logger("performance").info(f"{operation} took {duration:.3f}s", extra=extra)
