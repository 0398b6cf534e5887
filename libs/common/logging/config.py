"""Centralized logging configuration for filter pipelines.

Structured JSON output goes to stderr because stdout of a pipeline usually
carries the event stream itself.

Example:
    >>> from libs.common.logging.config import configure_logging
    >>> logger = configure_logging(pipeline_name="real_ip_filter", log_level="INFO")
    >>> logger.info("Pipeline started", extra={"context": {"trusted_networks": 2}})
"""

import logging
import sys
from typing import IO, Optional

from libs.common.logging.context import get_event_id
from libs.common.logging.formatter import JSONFormatter


class EventIdFilter(logging.Filter):
    """Logging filter that adds the current event ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.event_id = get_event_id()
        return True


def configure_logging(
    pipeline_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure structured JSON logging for a pipeline.

    Replaces any handlers on the root logger with a single JSON handler.
    This should be called once at startup.

    Args:
        pipeline_name: Name of the pipeline (e.g., "real_ip_filter")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_context: Whether to include context dict in output
        stream: Where to write logs (default: sys.stderr)

    Returns:
        Configured root logger instance

    Raises:
        ValueError: If log_level is invalid
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        JSONFormatter(
            pipeline_name=pipeline_name,
            include_context=include_context,
        )
    )
    handler.addFilter(EventIdFilter())

    root_logger.addHandler(handler)

    return root_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance (root logger when name is None)."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context_fields: object,
) -> None:
    """Log a message with additional context fields.

    Context fields appear in the "context" dict in JSON output.

    Example:
        >>> log_with_context(logger, "WARNING", "Invalid IP address", address="10.5")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra={"context": context_fields})
