"""Forwarded-for field values and chain normalization.

A field read from an event can be missing, a single string, a list, or some
other JSON value. That distinction is made once, here, by :func:`field_value`;
everything downstream works on the resulting variant instead of inspecting
raw types.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from libs.real_ip.networks import IPAddress

# Characters removed around each token of a delimited X-Forwarded-For string.
# "+" shows up when the header was URL-encoded by the web server's log format.
_TOKEN_STRIP_CHARS = " \t+"


@dataclass(frozen=True)
class Absent:
    """The field is not present on the event."""


@dataclass(frozen=True)
class Single:
    """The field holds one string."""

    value: str


@dataclass(frozen=True)
class Multiple:
    """The field holds an ordered list of values (left-most first)."""

    values: tuple[Any, ...]


@dataclass(frozen=True)
class Unsupported:
    """The field holds something else (number, mapping, boolean)."""

    value: Any


FieldValue = Absent | Single | Multiple | Unsupported

ABSENT = Absent()


def field_value(raw: Any) -> FieldValue:
    """Convert a raw event value into a :data:`FieldValue` variant."""
    if isinstance(raw, Absent | Single | Multiple | Unsupported):
        return raw
    if raw is None:
        return ABSENT
    if isinstance(raw, str):
        return Single(raw)
    if isinstance(raw, list | tuple):
        return Multiple(tuple(raw))
    return Unsupported(raw)


def split_forwarded_for(header: str) -> list[str]:
    """Split a comma separated X-Forwarded-For value into tokens.

    Spaces and "+" around each token are stripped. Trailing empty tokens are
    dropped, so "1.2.3.4," yields one token and "" yields none.

    Example:
        >>> split_forwarded_for("1.2.3.4, 192.168.3.4,+ 192.168.4.5")
        ['1.2.3.4', '192.168.3.4', '192.168.4.5']
    """
    tokens = [token.strip(_TOKEN_STRIP_CHARS) for token in header.split(",")]
    while tokens and not tokens[-1]:
        tokens.pop()
    return tokens


def is_blank(tokens: Sequence[Any]) -> bool:
    """True for an empty chain or a chain of exactly one empty string."""
    if not tokens:
        return True
    return len(tokens) == 1 and isinstance(tokens[0], str) and not tokens[0].strip()


def parse_address(token: Any) -> IPAddress | None:
    """Parse a single address, returning None if it is not a valid IP."""
    if not isinstance(token, str):
        return None
    try:
        return ipaddress.ip_address(token)
    except ValueError:
        return None


__all__ = [
    "ABSENT",
    "Absent",
    "FieldValue",
    "Multiple",
    "Single",
    "Unsupported",
    "field_value",
    "is_blank",
    "parse_address",
    "split_forwarded_for",
]
