"""
Unit tests for libs.real_ip.networks.

Tests cover:
- CIDR parsing (prefix, bare address, host bits, IPv6)
- All-or-nothing construction
- Family-aware containment
"""

from __future__ import annotations

import ipaddress

import pytest

from libs.common.exceptions import ConfigurationError, InvalidNetworkConfigError
from libs.real_ip.networks import TrustedNetworkSet, parse_network


class TestParseNetwork:
    """Tests for single CIDR entry parsing."""

    def test_parses_ipv4_prefix(self):
        assert parse_network("10.0.0.0/8") == ipaddress.ip_network("10.0.0.0/8")

    def test_bare_address_is_host_network(self):
        assert parse_network("192.168.1.1").prefixlen == 32
        assert parse_network("2001:db8::1").prefixlen == 128

    def test_host_bits_are_masked(self):
        network = parse_network("2606:2800:220:1:248:1893:25c8:1946/120")

        assert network == ipaddress.ip_network("2606:2800:220:1:248:1893:25c8:1900/120")

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_network("  10.0.0.0/8 ") == ipaddress.ip_network("10.0.0.0/8")

    @pytest.mark.parametrize(
        "entry",
        ["", "   ", "10.0.0.0/33", "not-a-network", "10.5", "2001:db8::/129", "10.0.0.0/8/8"],
    )
    def test_invalid_entries_raise(self, entry):
        with pytest.raises(InvalidNetworkConfigError) as exc_info:
            parse_network(entry)

        assert exc_info.value.entry == entry

    def test_invalid_entry_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            parse_network("bogus")


class TestTrustedNetworkSet:
    """Tests for TrustedNetworkSet construction and lookup."""

    def test_from_strings_keeps_configuration_order(self):
        trusted = TrustedNetworkSet.from_strings(["192.168.0.0/16", "10.0.0.0/8", "fd00::/8"])

        assert [str(n) for n in trusted] == ["192.168.0.0/16", "10.0.0.0/8", "fd00::/8"]
        assert len(trusted) == 3

    def test_construction_is_all_or_nothing(self):
        with pytest.raises(InvalidNetworkConfigError) as exc_info:
            TrustedNetworkSet.from_strings(["10.0.0.0/8", "999.0.0.0/8", "192.168.0.0/16"])

        assert exc_info.value.entry == "999.0.0.0/8"

    def test_parsing_same_configuration_is_idempotent(self):
        entries = ["10.0.0.0/8", "2001:db8::/32"]

        assert TrustedNetworkSet.from_strings(entries) == TrustedNetworkSet.from_strings(entries)

    def test_empty_set_trusts_nothing(self):
        trusted = TrustedNetworkSet.from_strings([])

        assert not trusted
        assert not trusted.contains(ipaddress.ip_address("10.0.0.1"))

    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            ("10.0.0.1", True),
            ("10.255.255.255", True),
            ("11.0.0.1", False),
            ("192.168.3.4", True),
            ("192.169.0.1", False),
            ("1.2.3.4", False),
        ],
    )
    def test_contains_ipv4(self, trusted_networks, address, expected):
        trusted = TrustedNetworkSet.from_strings(trusted_networks)

        assert trusted.contains(ipaddress.ip_address(address)) is expected

    def test_contains_ipv6(self):
        trusted = TrustedNetworkSet.from_strings(["2606:2800:220:1:248:1893:25c8:1946/120"])

        assert trusted.contains(ipaddress.ip_address("2606:2800:220:1:248:1893:25c8:1946"))
        assert trusted.contains(ipaddress.ip_address("2606:2800:220:1:248:1893:25c8:19ff"))
        assert not trusted.contains(ipaddress.ip_address("2606:2800:220:1:248:1893:25c8:2000"))

    def test_families_never_match_each_other(self):
        trusted = TrustedNetworkSet.from_strings(["0.0.0.0/0"])

        assert trusted.contains(ipaddress.ip_address("8.8.8.8"))
        assert not trusted.contains(ipaddress.ip_address("::1"))
        assert not trusted.contains(ipaddress.ip_address("::ffff:10.0.0.1"))

    def test_host_entry_matches_only_that_address(self):
        trusted = TrustedNetworkSet.from_strings(["10.0.0.1"])

        assert trusted.contains(ipaddress.ip_address("10.0.0.1"))
        assert not trusted.contains(ipaddress.ip_address("10.0.0.2"))

    def test_in_operator(self):
        trusted = TrustedNetworkSet.from_strings(["10.0.0.0/8"])

        assert ipaddress.ip_address("10.1.2.3") in trusted
        assert "10.1.2.3" not in trusted

    def test_set_is_immutable(self):
        trusted = TrustedNetworkSet.from_strings(["10.0.0.0/8"])

        with pytest.raises(AttributeError):
            trusted.networks = ()  # type: ignore[misc]
