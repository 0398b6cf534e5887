"""
Exception hierarchy for the real IP resolver.

Only configuration problems are raised as exceptions. Problems with the data
of a single event (missing peer, malformed forwarded-for entries, ...) are
reported as values on the evaluation result so that one bad event never
aborts a pipeline.
"""


class RealIpError(Exception):
    """
    Base exception for all real IP resolver errors.

    Example:
        >>> try:
        ...     build_filter(settings)
        ... except RealIpError as e:
        ...     logger.error(f"Resolver error: {e}")
    """

    pass


class ConfigurationError(RealIpError):
    """
    Raised when the filter or evaluator is configured incorrectly.

    This is a deployment mistake, not bad data, and is expected to abort
    startup.

    Example:
        >>> if not settings.x_forwarded_for_field:
        ...     raise ConfigurationError("x_forwarded_for_field must be set")
    """

    pass


class InvalidNetworkConfigError(ConfigurationError):
    """
    Raised when a trusted network entry is not valid CIDR notation.

    Attributes:
        entry: The configuration string that failed to parse

    Example:
        >>> TrustedNetworkSet.from_strings(["10.0.0.0/33"])
        Traceback (most recent call last):
        ...
        InvalidNetworkConfigError: Invalid trusted network entry: '10.0.0.0/33'
    """

    def __init__(self, entry: str) -> None:
        super().__init__(f"Invalid trusted network entry: {entry!r}")
        self.entry = entry
