"""Real IP filter.

Applies trust-chain evaluation to event records, in the manner of a log
pipeline filter: read the remote address and X-Forwarded-For fields, resolve
the real client IP, and write the result (or failure tags) back onto the
event.

Example:
    >>> settings = FilterSettings(
    ...     remote_address_field="remote_addr",
    ...     x_forwarded_for_field="x_fwd_for",
    ...     trusted_networks=["10.0.0.0/8", "192.168.0.0/16"],
    ... )
    >>> event = Event({"remote_addr": "10.1.1.1", "x_fwd_for": ["1.2.3.4", "10.2.2.2"]})
    >>> RealIpFilter(settings).filter(event)
    True
    >>> event.get("real_ip")
    '1.2.3.4'
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from apps.real_ip_filter import metrics
from apps.real_ip_filter.config import FilterSettings
from apps.real_ip_filter.event import Event, parse_field_reference
from libs.common.exceptions import ConfigurationError
from libs.common.logging import EventContext, log_with_context
from libs.real_ip.evaluator import TrustChainEvaluator
from libs.real_ip.models import EvaluationResult, EvaluatorOptions, FailureReason, ResolvedFrom

logger = logging.getLogger(__name__)

_FAILURE_MESSAGES = {
    FailureReason.MISSING_PEER_ADDRESS: "remote_address_field missing from event",
    FailureReason.INVALID_PEER_ADDRESS: "Invalid IP address in remote_address_field",
    FailureReason.MISSING_CHAIN: "x_forwarded_for_field missing from event",
    FailureReason.CHAIN_NOT_STRING: "x_forwarded_for_field isn't of type string",
    FailureReason.INVALID_ADDRESS_IN_CHAIN: "Invalid IP address in x_forwarded_for_field",
}


class RealIpFilter:
    """Resolve and record the real client IP of events.

    Construction validates the configuration and parses the trusted
    networks once; afterwards the filter holds no mutable state and may be
    shared between worker threads.

    Args:
        settings: Filter configuration

    Raises:
        ConfigurationError: If a required field name is missing or a field
            reference is malformed
        InvalidNetworkConfigError: If a trusted network is not valid CIDR
    """

    def __init__(self, settings: FilterSettings) -> None:
        self.settings = settings
        self._validate()
        self.evaluator = TrustChainEvaluator(
            settings.trusted_networks,
            EvaluatorOptions(
                require_peer_trust_check=settings.check_remote_address,
                chain_is_delimited_string=settings.x_forwarded_for_is_string,
                collect_all_valid_addresses=bool(settings.x_forwarded_for_target),
            ),
            trace=self._trace,
        )
        logger.info(
            "Real IP filter registered",
            extra={
                "context": {
                    "trusted_networks": len(self.evaluator.trusted_networks),
                    "check_remote_address": settings.check_remote_address,
                    "x_forwarded_for_is_string": settings.x_forwarded_for_is_string,
                }
            },
        )

    def _validate(self) -> None:
        settings = self.settings
        if settings.check_remote_address and not settings.remote_address_field:
            raise ConfigurationError(
                "The configuration option 'remote_address_field' must be a non-zero length string"
            )
        if not settings.x_forwarded_for_field:
            raise ConfigurationError(
                "The configuration option 'x_forwarded_for_field' must be a non-zero length string"
            )
        if not settings.target_field:
            raise ConfigurationError(
                "The configuration option 'target_field' must be a non-zero length string"
            )

        references = [
            settings.remote_address_field,
            settings.x_forwarded_for_field,
            settings.target_field,
            settings.x_forwarded_for_target,
            *settings.add_field,
        ]
        for reference in references:
            if not reference:
                continue
            try:
                parse_field_reference(reference)
            except ValueError as e:
                raise ConfigurationError(str(e)) from None

    def filter(self, event: Event) -> bool:
        """Evaluate one event in place.

        Returns:
            True if a real IP was written to the target field
        """
        settings = self.settings
        peer = event.get(settings.remote_address_field) if settings.remote_address_field else None
        result = self.evaluator.evaluate(peer, event.get_field(settings.x_forwarded_for_field))
        metrics.record_evaluation(result)
        self._apply(event, result)
        return result.ok

    def filter_many(self, events: Iterable[Event | dict[str, Any]]) -> Iterator[Event]:
        """Evaluate a stream of events, each under its own log event ID."""
        for item in events:
            event = item if isinstance(item, Event) else Event(item)
            with EventContext():
                self.filter(event)
            yield event

    def filter_matched(self, event: Event) -> None:
        """Apply the success decorations (add_field / add_tag)."""
        for reference, template in self.settings.add_field.items():
            event.set(event.sprintf(reference), event.sprintf(template))
        for tag in self.settings.add_tag:
            event.tag(event.sprintf(tag))

    def _apply(self, event: Event, result: EvaluationResult) -> None:
        settings = self.settings

        if settings.x_forwarded_for_target and result.valid_chain is not None:
            event.set(settings.x_forwarded_for_target, list(result.valid_chain))

        if result.has_invalid_addresses:
            for tag in settings.tags_on_invalid_ip:
                event.tag(tag)

        if result.failure is not None:
            self._log_failure(event, result)
            for tag in settings.tags_on_failure:
                event.tag(tag)
            return

        if result.resolved_from is ResolvedFrom.PEER_WITHOUT_CHAIN:
            logger.info(
                "x_forwarded_for_field missing or empty, evaluating to remote address",
                extra={"context": {"real_ip": result.address}},
            )

        event.set(settings.target_field, result.address)
        self.filter_matched(event)

    def _log_failure(self, event: Event, result: EvaluationResult) -> None:
        assert result.failure is not None
        context: dict[str, Any] = {"reason": result.failure.value}
        if result.failure is FailureReason.INVALID_ADDRESS_IN_CHAIN:
            context["invalid_addresses"] = list(result.invalid_addresses)
        elif result.failure is FailureReason.INVALID_PEER_ADDRESS:
            context["address"] = event.get(self.settings.remote_address_field)
        elif result.failure is FailureReason.CHAIN_NOT_STRING:
            context["type"] = type(event.get(self.settings.x_forwarded_for_field)).__name__
        log_with_context(logger, "WARNING", _FAILURE_MESSAGES[result.failure], **context)

    def _trace(self, message: str, context: dict[str, Any]) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            log_with_context(logger, "DEBUG", message, **context)


__all__ = ["RealIpFilter"]
