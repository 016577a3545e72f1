"""
Structured logging setup using structlog.

Every reaper pass binds its strategy and batch size into the log context,
so lines from the registry walk, the queue scans and the batch delete can be
grouped by pass without threading those values through each call.
"""

import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace

from lock_reaper.config import get_settings


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add OpenTelemetry trace context to log records.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary with trace context added.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_service_name(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag records with the service name, shared with the tracing resource."""
    event_dict.setdefault("service", get_settings().otel_service_name)
    return event_dict


def setup_logging() -> None:
    """
    Configure structured logging for the reaper.

    Sets up structlog with JSON or console output based on configuration and
    routes standard library loggers through the same renderer.
    """
    settings = get_settings()

    # Determine log level
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Shared processors for all loggers, pass context first
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    # Configure output format
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Reaper modules log through the standard library
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # Connection chatter from the client library
    logging.getLogger("redis").setLevel(logging.WARNING)


@contextmanager
def reaper_context(**kwargs: Any) -> Generator[None]:
    """
    Bind values to every log record emitted inside the block.

    Args:
        **kwargs: Key-value pairs to add to log context. None values are skipped.
    """
    values = {key: value for key, value in kwargs.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**values):
        yield
