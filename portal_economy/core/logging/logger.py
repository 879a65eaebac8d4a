"""
Portal Economy logging.

Records are enriched with the ambient profile id, operation and correlation
id (``LogContext``), pushed through a QueueHandler so the event loop never
blocks on handler I/O, and written by a QueueListener thread to the console
(JSON in production, colored text in development) and to a daily rotating
JSON file.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from portal_economy.core.config.config import Config


_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context",
    default={},
)

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "portal_economy.json.log"
QUEUE_MAX_SIZE = 10_000


# ============================================================================
# Config / Environment
# ============================================================================


@dataclass(frozen=True)
class LoggerConfig:
    """Logging switches resolved from Config at setup time."""

    @property
    def logs_dir(self) -> Path:
        return Path(Config.LOGS_DIR).resolve()

    @property
    def log_level(self) -> int:
        return getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return Config.is_production()
        return bool(Config.LOG_JSON)

    @property
    def use_colors(self) -> bool:
        if self.use_json:
            return False
        return bool(Config.LOG_COLORS) and sys.stdout.isatty()


LOGGER_CONFIG = LoggerConfig()


@dataclass
class LoggingMetrics:
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0


@dataclass(frozen=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


_logging_metrics: LoggingMetrics = LoggingMetrics()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_queue_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        context: Dict[str, Any] = _request_context.get()

        record.profile_id = context.get("profile_id", "N/A")
        record.correlation_id = context.get("correlation_id", "N/A")
        # Explicit ``extra={"operation": ...}`` wins over the ambient context
        if not hasattr(record, "operation"):
            record.operation = context.get("operation", "N/A")
        return True


class ColoredFormatter(logging.Formatter):
    COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        prefix = self.COLORS.get(original, "")
        if prefix:
            record.levelname = f"{prefix}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
        "message",
        "asctime",
        "taskName",
    }
    CONTEXT_ATTRS = frozenset({"profile_id", "correlation_id", "operation"})

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                log_data[attr] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: val
            for key, val in record.__dict__.items()
            if key not in self.STANDARD_ATTRS
            and key not in self.CONTEXT_ATTRS
            and not key.startswith("_")
        }
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, ensure_ascii=False, default=str)


class PortalQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:
        _logging_metrics.records_enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _logging_metrics.records_dropped += 1
            sys.stderr.write("Portal logging queue full; dropping log record.\n")


class PortalQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:
        _logging_metrics.listener_errors += 1
        sys.stderr.write("Portal logging handler error while processing record.\n")


# ============================================================================
# Global Setup
# ============================================================================


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    elif LOGGER_CONFIG.use_colors:
        handler.setFormatter(ColoredFormatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _build_file_handler() -> logging.Handler:
    LOGGER_CONFIG.logs_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(LOGGER_CONFIG.logs_dir / LOG_FILE_NAME),
        when="midnight",
        backupCount=1,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(*, file_output: bool = True) -> None:
    """Install the queue-backed handler stack on the root logger (idempotent)."""
    global _queue_listener, _logging_metrics, _log_queue

    root = logging.getLogger()
    if getattr(root, "_portal_logging_initialized", False):
        return

    _logging_metrics = LoggingMetrics()
    level = LOGGER_CONFIG.log_level

    root.setLevel(level)
    root.handlers.clear()

    handlers = [_build_console_handler()]
    if file_output:
        handlers.append(_build_file_handler())

    _log_queue = queue.Queue(QUEUE_MAX_SIZE)
    _queue_listener = PortalQueueListener(_log_queue, *handlers)
    _queue_listener.start()

    queue_handler = PortalQueueHandler(_log_queue)
    queue_handler.setLevel(level)
    # Context must be captured on the emitting task, not on the listener thread
    queue_handler.addFilter(ContextFilter())
    root.addHandler(queue_handler)

    for noisy in ("asyncio", "httpx", "httpcore", "redis"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, "_portal_logging_initialized", True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": str(Config.ENVIRONMENT).lower(),
            "log_level": logging.getLevelName(level),
            "json": LOGGER_CONFIG.use_json,
            "file_output": file_output,
        },
    )


def shutdown_logging() -> None:
    global _queue_listener, _log_queue

    root = logging.getLogger()
    if not getattr(root, "_portal_logging_initialized", False):
        return

    logging.getLogger(__name__).info("Shutting down logging subsystem.")

    if _queue_listener is not None:
        _queue_listener.stop()
        for handler in _queue_listener.handlers:
            handler.close()
        _queue_listener = None

    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)

    setattr(root, "_portal_logging_initialized", False)
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    initialized = bool(getattr(logging.getLogger(), "_portal_logging_initialized", False))
    return LoggingHealth(
        initialized=initialized,
        queue_size=_log_queue.qsize() if _log_queue is not None else 0,
        queue_max_size=_log_queue.maxsize if _log_queue is not None else 0,
        records_enqueued=_logging_metrics.records_enqueued,
        records_dropped=_logging_metrics.records_dropped,
        listener_errors=_logging_metrics.listener_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def set_log_context(**values: Any) -> Token:
    merged = {**_request_context.get(), **{k: v for k, v in values.items() if v is not None}}
    return _request_context.set(merged)


def clear_log_context(token: Optional[Token] = None) -> None:
    if token is not None:
        _request_context.reset(token)
    else:
        _request_context.set({})


class LogContext:
    """
    Scope logging context for a block of sync or async code.

    Example
    -------
    >>> async with LogContext(profile_id="default", operation="fuse_characters"):
    ...     logger.info("Fusing")
    """

    def __init__(
        self,
        profile_id: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self._values: Dict[str, Any] = {
            "profile_id": profile_id,
            "operation": operation,
            "correlation_id": correlation_id or uuid.uuid4().hex[:12],
        }
        self._token: Optional[Token] = None

    def __enter__(self) -> "LogContext":
        self._token = set_log_context(**self._values)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        clear_log_context(self._token)
        self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.__exit__(exc_type, exc, tb)
