"""
Configuration for the real IP filter.

Settings use Pydantic Settings for type-safe configuration management. Every
option can be overridden via environment variables prefixed with
``REAL_IP_`` or a ``.env`` file. List and dict options are given as JSON.

Example:
    export REAL_IP_REMOTE_ADDRESS_FIELD=remote_addr
    export REAL_IP_X_FORWARDED_FOR_FIELD=x_fwd_for
    export REAL_IP_TRUSTED_NETWORKS='["10.0.0.0/8", "192.168.0.0/16"]'

    >>> from apps.real_ip_filter.config import FilterSettings
    >>> FilterSettings().target_field
    'real_ip'
"""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TAGS_ON_FAILURE = ["_real_ip_lookup_failure"]
DEFAULT_TAGS_ON_INVALID_IP = ["_real_ip_invalid_ip"]


class FilterSettings(BaseSettings):
    """
    Real IP filter configuration.

    Attributes:
        remote_address_field: Field holding the layer 3 peer address
        x_forwarded_for_field: Field holding the X-Forwarded-For value
        x_forwarded_for_is_string: The X-Forwarded-For field is a comma
            separated string instead of a list
        trusted_networks: CIDR ranges whose X-Forwarded-For entries are believed
        target_field: Field the resolved real IP is written to
        x_forwarded_for_target: If set, every valid chain address is written
            to this field
        tags_on_failure: Tags added when no real IP could be resolved
        tags_on_invalid_ip: Tags added when the chain contained invalid entries
        check_remote_address: Gate the chain on the remote address being trusted
        add_tag: Tags added to every successfully resolved event
        add_field: Fields added to every successfully resolved event
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """

    model_config = SettingsConfigDict(
        env_prefix="REAL_IP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    remote_address_field: str = Field(
        default="",
        description="Name of the field that contains the layer 3 remote IP address",
    )
    x_forwarded_for_field: str = Field(
        default="",
        description="Name of the field that contains the X-Forwarded-For header value",
    )
    x_forwarded_for_is_string: bool = Field(
        default=False,
        description="X-Forwarded-For field is a comma-separated string instead of a list",
    )
    trusted_networks: list[str] = Field(
        default_factory=list,
        description="Trusted proxy networks in CIDR notation",
    )
    target_field: str = Field(
        default="real_ip",
        description="Field the evaluated real client IP is written to",
    )
    x_forwarded_for_target: str = Field(
        default="",
        description="Field all valid X-Forwarded-For addresses are written to (disabled if empty)",
    )
    tags_on_failure: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TAGS_ON_FAILURE),
        description="Tags added when evaluation fails",
    )
    tags_on_invalid_ip: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TAGS_ON_INVALID_IP),
        description="Tags added when the X-Forwarded-For chain has invalid addresses",
    )
    check_remote_address: bool = Field(
        default=True,
        description="Only believe X-Forwarded-For when the remote address is trusted",
    )
    add_tag: list[str] = Field(
        default_factory=list,
        description="Tags added on successful evaluation",
    )
    add_field: dict[str, str] = Field(
        default_factory=dict,
        description="Fields added on successful evaluation (values support %{field})",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        if not isinstance(logging.getLevelName(value.upper()), int):
            raise ValueError(f"Invalid log level: {value}")
        return value.upper()
