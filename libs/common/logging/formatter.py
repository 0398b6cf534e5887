"""JSON log formatter for structured logging.

Each record is rendered as a single JSON object so pipeline diagnostics can
be shipped to the same log aggregation as the events themselves.

Example log output:
    {
        "timestamp": "2025-10-21T10:30:00.000Z",
        "level": "WARNING",
        "pipeline": "real_ip_filter",
        "event_id": "line-17",
        "message": "Invalid IP address in x_forwarded_for_field",
        "context": {"address": "10.5", "reason": "invalid_address_in_chain"}
    }
"""

import json
import logging
import traceback
from datetime import UTC, datetime
from types import TracebackType
from typing import Any

# Attributes every LogRecord carries; anything else was passed via ``extra``.
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
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "event_id",
        "context",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON.

    Attributes:
        pipeline_name: Name of the pipeline emitting logs
        include_context: Whether to include extra context fields

    Example:
        >>> formatter = JSONFormatter(pipeline_name="real_ip_filter")
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
        >>> logger.info("Chain resolved", extra={"context": {"real_ip": "1.2.3.4"}})
    """

    def __init__(
        self, pipeline_name: str, include_context: bool = True, *args: Any, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self.pipeline_name = pipeline_name
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            JSON string representation of the log record
        """
        log_entry: dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "pipeline": self.pipeline_name,
            "event_id": getattr(record, "event_id", None),
            "message": record.getMessage(),
        }

        if self.include_context:
            context = self._extract_context(record)
            if context:
                log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self._format_exception(record.exc_info),
            }

        log_entry["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        # Event values may be arbitrary JSON, fall back to str() for the rest
        return json.dumps(log_entry, default=str)

    def _format_timestamp(self, created: float) -> str:
        """Format a Unix timestamp as ISO 8601 in UTC with millisecond precision.

        Example:
            >>> JSONFormatter(pipeline_name="test")._format_timestamp(1697896200.0)
            '2023-10-21T13:50:00.000Z'
        """
        dt = datetime.fromtimestamp(created, tz=UTC)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def _extract_context(self, record: logging.LogRecord) -> dict[str, Any] | None:
        """Extract context from the record.

        An explicit ``context`` dict wins. Otherwise every non-standard
        attribute passed through ``extra`` is collected.
        """
        context = getattr(record, "context", None)
        if context and isinstance(context, dict):
            return dict(context)

        extra = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_FIELDS
        }
        return extra if extra else None

    def _format_exception(
        self,
        exc_info: tuple[type[BaseException] | None, BaseException | None, TracebackType | None],
    ) -> str:
        return "".join(traceback.format_exception(*exc_info))
