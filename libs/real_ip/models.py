"""Options and result types for trust-chain evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResolvedFrom(str, Enum):
    """Where the resolved address came from."""

    PEER_WITHOUT_CHAIN = "peer_without_chain"
    UNTRUSTED_PEER = "untrusted_peer"
    UNTRUSTED_HOP = "untrusted_hop"
    LEFTMOST_HOP = "leftmost_hop"


class FailureReason(str, Enum):
    """Why an evaluation could not produce a real IP."""

    MISSING_PEER_ADDRESS = "missing_peer_address"
    INVALID_PEER_ADDRESS = "invalid_peer_address"
    MISSING_CHAIN = "missing_chain"
    CHAIN_NOT_STRING = "chain_not_string"
    INVALID_ADDRESS_IN_CHAIN = "invalid_address_in_chain"


@dataclass(frozen=True)
class EvaluatorOptions:
    """Evaluator behaviour, fixed at construction.

    Attributes:
        require_peer_trust_check: Gate the chain on the peer address being
            trusted. When False the peer may be absent and the chain is
            judged on its own.
        chain_is_delimited_string: The chain arrives as one comma separated
            string instead of a list.
        collect_all_valid_addresses: Keep scanning after a decision (or a
            fatal parse error) so every parsable chain entry is reported.
    """

    require_peer_trust_check: bool = True
    chain_is_delimited_string: bool = False
    collect_all_valid_addresses: bool = False


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of one evaluation.

    Exactly one of ``address`` and ``failure`` is set.

    Attributes:
        address: The resolved real IP
        resolved_from: How the address was chosen
        failure: Why no real IP could be resolved
        valid_chain: Parsable chain entries in original left-to-right order.
            Only populated when collecting all valid addresses and the chain
            was actually scanned.
        invalid_addresses: Chain tokens that failed to parse, in the order
            they were encountered (right to left)
    """

    address: str | None = None
    resolved_from: ResolvedFrom | None = None
    failure: FailureReason | None = None
    valid_chain: tuple[str, ...] | None = None
    invalid_addresses: tuple[str, ...] = ()

    @classmethod
    def resolved(
        cls,
        address: str,
        resolved_from: ResolvedFrom,
        valid_chain: tuple[str, ...] | None = None,
        invalid_addresses: tuple[str, ...] = (),
    ) -> EvaluationResult:
        return cls(
            address=address,
            resolved_from=resolved_from,
            valid_chain=valid_chain,
            invalid_addresses=invalid_addresses,
        )

    @classmethod
    def failed(
        cls,
        reason: FailureReason,
        valid_chain: tuple[str, ...] | None = None,
        invalid_addresses: tuple[str, ...] = (),
    ) -> EvaluationResult:
        return cls(failure=reason, valid_chain=valid_chain, invalid_addresses=invalid_addresses)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def has_invalid_addresses(self) -> bool:
        return bool(self.invalid_addresses)


__all__ = ["EvaluationResult", "EvaluatorOptions", "FailureReason", "ResolvedFrom"]
