"""Structured logging library.

Usage:
    # At pipeline startup
    from libs.common.logging import configure_logging
    configure_logging(pipeline_name="real_ip_filter", log_level="INFO")

    # Per event
    from libs.common.logging import EventContext, get_logger, log_with_context
    logger = get_logger(__name__)
    with EventContext("line-1"):
        log_with_context(logger, "INFO", "Resolved real IP", real_ip="1.2.3.4")
"""

from libs.common.logging.config import (
    EventIdFilter,
    configure_logging,
    get_logger,
    log_with_context,
)
from libs.common.logging.context import (
    EventContext,
    clear_event_id,
    generate_event_id,
    get_event_id,
    set_event_id,
)
from libs.common.logging.formatter import JSONFormatter

__all__ = [
    # Configuration
    "configure_logging",
    "get_logger",
    "log_with_context",
    "EventIdFilter",
    # Event ID management
    "generate_event_id",
    "get_event_id",
    "set_event_id",
    "clear_event_id",
    "EventContext",
    # Formatter
    "JSONFormatter",
]
