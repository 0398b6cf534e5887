"""Event ID generation and context propagation for per-event log correlation.

Every event that passes through the filter gets an ID that is attached to all
log records emitted while it is being processed, so the diagnostics for one
event can be grouped together even when a pipeline handles many events.

Example:
    >>> from libs.common.logging.context import EventContext, get_event_id
    >>> with EventContext("line-42"):
    ...     get_event_id()
    'line-42'
"""

import contextvars
import uuid
from types import TracebackType

_event_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "event_id", default=None
)


def generate_event_id() -> str:
    """Generate a new unique event ID (UUID v4 string).

    Example:
        >>> len(generate_event_id())
        36
    """
    return str(uuid.uuid4())


def get_event_id() -> str | None:
    """Get the ID of the event currently being processed, if any."""
    return _event_id_var.get()


def set_event_id(event_id: str) -> None:
    """Set the event ID for the current context.

    Args:
        event_id: The event ID to set

    Raises:
        ValueError: If event_id is empty or None
    """
    if not event_id:
        raise ValueError("Event ID cannot be empty")
    _event_id_var.set(event_id)


def clear_event_id() -> None:
    """Clear the event ID from the current context."""
    _event_id_var.set(None)


class EventContext:
    """Context manager that scopes an event ID to a block of code.

    The previous event ID (or its absence) is restored on exit, so contexts
    nest cleanly.

    Args:
        event_id: The event ID to use. If None, generates a new one.

    Example:
        >>> with EventContext() as event_id:
        ...     get_event_id() == event_id
        True
    """

    def __init__(self, event_id: str | None = None) -> None:
        self.event_id = event_id or generate_event_id()
        self.previous_event_id: str | None = None

    def __enter__(self) -> str:
        self.previous_event_id = get_event_id()
        set_event_id(self.event_id)
        return self.event_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.previous_event_id is not None:
            set_event_id(self.previous_event_id)
        else:
            clear_event_id()
