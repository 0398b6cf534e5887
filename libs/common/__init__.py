"""Common utilities and exceptions."""

from libs.common.exceptions import (
    ConfigurationError,
    InvalidNetworkConfigError,
    RealIpError,
)

__all__ = [
    "RealIpError",
    "ConfigurationError",
    "InvalidNetworkConfigError",
]
