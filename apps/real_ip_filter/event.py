"""Event records and field references.

Events are plain JSON objects. Fields are addressed either by a top-level
name (``remote_addr``) or by a bracketed path into nested objects
(``[http][request][x_forwarded_for]``).
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any

from libs.real_ip.chain import FieldValue, field_value

TAGS_FIELD = "tags"

_PATH_SEGMENT = re.compile(r"\[([^\[\]]+)\]")
_SPRINTF = re.compile(r"%\{([^}]+)\}")


@lru_cache(maxsize=256)
def parse_field_reference(reference: str) -> tuple[str, ...]:
    """Split a field reference into its path segments.

    Example:
        >>> parse_field_reference("[http][x_forwarded_for]")
        ('http', 'x_forwarded_for')
        >>> parse_field_reference("remote_addr")
        ('remote_addr',)

    Raises:
        ValueError: If the reference is empty or has malformed brackets
    """
    if not reference:
        raise ValueError("Field reference cannot be empty")
    if not reference.startswith("["):
        return (reference,)
    segments = _PATH_SEGMENT.findall(reference)
    if "".join(f"[{s}]" for s in segments) != reference:
        raise ValueError(f"Malformed field reference: {reference!r}")
    return tuple(segments)


class Event:
    """Mutable wrapper around one event dict."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = data if data is not None else {}

    def get(self, reference: str) -> Any:
        """Return the value at ``reference``, None if any segment is missing."""
        node: Any = self.data
        for segment in parse_field_reference(reference):
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def get_field(self, reference: str) -> FieldValue:
        return field_value(self.get(reference))

    def set(self, reference: str, value: Any) -> None:
        """Write ``value`` at ``reference``, creating intermediate objects."""
        *parents, leaf = parse_field_reference(reference)
        node = self.data
        for segment in parents:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[leaf] = value

    def includes(self, reference: str) -> bool:
        return self.get(reference) is not None

    @property
    def tags(self) -> list[str]:
        tags = self.data.get(TAGS_FIELD)
        if isinstance(tags, list):
            return tags
        if isinstance(tags, str):
            return [tags]
        return []

    def tag(self, name: str) -> None:
        """Add a tag unless the event already carries it."""
        tags = self.tags
        if name not in tags:
            self.data[TAGS_FIELD] = [*tags, name]

    def sprintf(self, template: str) -> str:
        """Substitute ``%{field}`` references with event values.

        References to missing fields are left untouched.
        """

        def _replace(match: re.Match[str]) -> str:
            value = self.get(match.group(1))
            return match.group(0) if value is None else str(value)

        return _SPRINTF.sub(_replace, template)

    def to_dict(self) -> dict[str, Any]:
        return self.data

    def __repr__(self) -> str:
        return f"Event({self.data!r})"
