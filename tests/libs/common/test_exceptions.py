"""
Unit tests for libs.common.exceptions.

Tests cover:
- Exception hierarchy structure
- InvalidNetworkConfigError message and entry attribute
"""

from __future__ import annotations

import pytest

from libs.common.exceptions import ConfigurationError, InvalidNetworkConfigError, RealIpError


class TestRealIpError:
    def test_can_be_raised(self):
        with pytest.raises(RealIpError):
            raise RealIpError("test error")

    def test_message_preserved(self):
        assert str(RealIpError("specific message")) == "specific message"

    def test_inherits_from_exception(self):
        assert isinstance(RealIpError("test"), Exception)


class TestConfigurationError:
    def test_is_real_ip_error(self):
        assert issubclass(ConfigurationError, RealIpError)

    def test_caught_as_real_ip_error(self):
        with pytest.raises(RealIpError):
            raise ConfigurationError("x_forwarded_for_field must be set")


class TestInvalidNetworkConfigError:
    def test_is_configuration_error(self):
        assert issubclass(InvalidNetworkConfigError, ConfigurationError)

    def test_keeps_entry(self):
        error = InvalidNetworkConfigError("10.0.0.0/33")

        assert error.entry == "10.0.0.0/33"

    def test_message_names_entry(self):
        assert str(InvalidNetworkConfigError("bogus")) == "Invalid trusted network entry: 'bogus'"
