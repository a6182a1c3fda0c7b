"""Structured logging setup for cricket-sync."""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from structlog.stdlib import LoggerFactory

from .config import LogFormat, get_settings

# Context variable for per-run tracking
trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def get_trace_id() -> str:
    """Get or generate a trace ID for run tracking."""
    trace_id = trace_id_var.get()
    if trace_id is None:
        trace_id = new_trace_id()
    return trace_id


def new_trace_id() -> str:
    """Start a fresh trace ID for the current context, replacing any previous one."""
    trace_id = str(uuid.uuid4())[:8]
    trace_id_var.set(trace_id)
    return trace_id


def clear_trace_id() -> None:
    """Clear the trace ID from the current context."""
    trace_id_var.set(None)


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add trace ID to log events."""
    event_dict["trace_id"] = get_trace_id()
    return event_dict


def configure_logging() -> None:
    """Configure structured logging for CLI runs."""
    settings = get_settings()

    processors = [
        structlog.contextvars.merge_contextvars,
        add_trace_id,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    elif settings.LOG_FORMAT == LogFormat.STRUCTURED:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:  # text format
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.LOG_LEVEL.upper())
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.LOG_FILE:
        settings.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setLevel(level)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, format="%(message)s", force=True)

    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
