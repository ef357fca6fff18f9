"""Structured logging configuration for Studioflow.

This module configures structlog with support for:
- JSON and console output formats
- File rotation based on size
- Correlation IDs for request tracing
- Actor and stage context binding

structlog handles event emission while Python's stdlib logging owns the
handlers (stdout or a rotating file).

Example usage:
    >>> from studioflow.config import LoggingConfig
    >>> from studioflow.logging import setup_logging, get_logger, bind_stage_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_stage_context(stage_id="5d0c...", version_id="a41f...")
    >>> logger.info("rendering_version_completed", label="v2")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog

from studioflow.config import LoggingConfig

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with correlation_id added if available
    """
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID for current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def bind_actor_context(actor_id: str) -> None:
    """Bind the acting team member to all subsequent logs in this context.

    Args:
        actor_id: Identifier of the user performing the request
    """
    structlog.contextvars.bind_contextvars(actor_id=actor_id)


def bind_stage_context(stage_id: str, version_id: str | None = None) -> None:
    """Bind stage (and optionally version) identifiers to subsequent logs.

    Args:
        stage_id: Stage identifier to bind
        version_id: Optional rendering or floorplan version identifier
    """
    context: dict[str, str] = {"stage_id": stage_id}
    if version_id is not None:
        context["version_id"] = version_id
    structlog.contextvars.bind_contextvars(**context)


def clear_log_context() -> None:
    """Drop every contextvar-bound logging key for the current context."""
    structlog.contextvars.clear_contextvars()


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with the given configuration.

    Sets up rendering (JSON or console), optional file rotation, and the
    timestamp, level, logger name and correlation ID processors.

    Args:
        config: Logging configuration from StudioflowConfig
    """
    log_level = getattr(logging, config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler: logging.Handler
    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.rotation_size_mb * 1024 * 1024,
            backupCount=config.retention_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stdout)

    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
