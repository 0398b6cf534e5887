"""Trusted network set.

Holds the parsed trusted-network configuration and answers whether an address
falls inside any of the configured prefixes. The set is immutable once built
and can be shared freely between threads.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from libs.common.exceptions import InvalidNetworkConfigError

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def parse_network(entry: str) -> IPNetwork:
    """Parse one CIDR entry.

    A bare address is a host network (/32 or /128). Host bits set below the
    prefix are masked off, so "10.1.2.3/8" is the same as "10.0.0.0/8".

    Raises:
        InvalidNetworkConfigError: If the entry is not valid CIDR notation
    """
    if not isinstance(entry, str) or not entry.strip():
        raise InvalidNetworkConfigError(str(entry))
    try:
        return ipaddress.ip_network(entry.strip(), strict=False)
    except ValueError:
        raise InvalidNetworkConfigError(entry) from None


@dataclass(frozen=True)
class TrustedNetworkSet:
    """Ordered, read-only collection of trusted IPv4 and IPv6 prefixes.

    Networks are kept in configuration order and bucketed by address family,
    so a lookup only ever compares an address against networks of its own
    family.

    Example:
        >>> trusted = TrustedNetworkSet.from_strings(["10.0.0.0/8", "fd00::/8"])
        >>> trusted.contains(ipaddress.ip_address("10.2.3.4"))
        True
        >>> trusted.contains(ipaddress.ip_address("1.2.3.4"))
        False
    """

    networks: tuple[IPNetwork, ...] = ()
    _v4: tuple[ipaddress.IPv4Network, ...] = field(default=(), init=False, repr=False, compare=False)
    _v6: tuple[ipaddress.IPv6Network, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        v4 = tuple(n for n in self.networks if isinstance(n, ipaddress.IPv4Network))
        v6 = tuple(n for n in self.networks if isinstance(n, ipaddress.IPv6Network))
        object.__setattr__(self, "_v4", v4)
        object.__setattr__(self, "_v6", v6)

    @classmethod
    def from_strings(cls, entries: Iterable[str]) -> TrustedNetworkSet:
        """Build a set from CIDR strings.

        Construction is all-or-nothing: the first bad entry raises and no set
        is returned.

        Raises:
            InvalidNetworkConfigError: If any entry is not valid CIDR notation
        """
        return cls(tuple(parse_network(entry) for entry in entries))

    def contains(self, address: IPAddress) -> bool:
        """Return True if any network of the address's family covers it."""
        if isinstance(address, ipaddress.IPv4Address):
            return any(address in network for network in self._v4)
        return any(address in network for network in self._v6)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, ipaddress.IPv4Address | ipaddress.IPv6Address):
            return False
        return self.contains(address)

    def __len__(self) -> int:
        return len(self.networks)

    def __iter__(self) -> Iterator[IPNetwork]:
        return iter(self.networks)

    def __bool__(self) -> bool:
        return bool(self.networks)


__all__ = ["IPAddress", "IPNetwork", "TrustedNetworkSet", "parse_network"]
