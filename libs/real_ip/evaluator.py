"""Trust-chain evaluation.

Resolves the real client address of a request from the directly observed
peer address and the X-Forwarded-For chain, in the manner of Apache's
mod_remoteip or nginx's realip module:

- If the peer is not a trusted proxy, the peer is the client and the chain is
  ignored (anyone can write an X-Forwarded-For header).
- Otherwise the chain is walked right to left, skipping trusted proxies, and
  the first untrusted address is the client.
- If every hop is trusted, the left-most chain entry is the client.

Both :class:`TrustChainEvaluator` and :class:`TrustedNetworkSet` are immutable
after construction, so one evaluator can serve any number of threads.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from typing import Any

from libs.real_ip.chain import (
    Absent,
    Multiple,
    Single,
    field_value,
    is_blank,
    parse_address,
    split_forwarded_for,
)
from libs.real_ip.models import (
    EvaluationResult,
    EvaluatorOptions,
    FailureReason,
    ResolvedFrom,
)
from libs.real_ip.networks import IPAddress, TrustedNetworkSet

TraceCallback = Callable[[str, dict[str, Any]], None]


class ScanState(str, Enum):
    """States of the right-to-left chain scan."""

    SCANNING = "scanning"
    RESOLVED = "resolved"
    FAILED_PENDING_COLLECTION = "failed_pending_collection"
    FAILED = "failed"


class ChainScan:
    """Right-to-left walk over forwarded-for tokens.

    Transitions per token:

    ===========================  ===============  ===========================
    state                        token            next state
    ===========================  ===============  ===========================
    SCANNING                     trusted IP       SCANNING
    SCANNING                     untrusted IP     RESOLVED
    SCANNING                     unparsable       FAILED_PENDING_COLLECTION
                                                  (collecting) or FAILED
    RESOLVED                     anything         RESOLVED
    FAILED_PENDING_COLLECTION    anything         FAILED_PENDING_COLLECTION
    ===========================  ===============  ===========================

    An unparsable token after a decision is only recorded as a diagnostic.
    Without collection the scan stops as soon as it leaves SCANNING.
    """

    def __init__(
        self,
        trusted_networks: TrustedNetworkSet,
        collect: bool = False,
        trace: TraceCallback | None = None,
    ) -> None:
        self._trusted = trusted_networks
        self._collect = collect
        self._trace = trace
        self.state = ScanState.SCANNING
        self.resolved_address: str | None = None
        self.valid: deque[str] = deque()
        self.invalid: list[str] = []

    @property
    def finished(self) -> bool:
        if self.state is ScanState.FAILED:
            return True
        return self.state is ScanState.RESOLVED and not self._collect

    def feed(self, token: Any) -> None:
        """Consume the next token (moving leftwards through the chain)."""
        ip = parse_address(token)
        if ip is None:
            self.invalid.append(str(token))
            self._emit(
                "Invalid IP address in x_forwarded_for chain",
                address=token,
                decided=self.state is ScanState.RESOLVED,
            )
            if self.state is ScanState.SCANNING:
                self.state = (
                    ScanState.FAILED_PENDING_COLLECTION if self._collect else ScanState.FAILED
                )
            return

        self.valid.appendleft(str(ip))
        if self.state is not ScanState.SCANNING:
            return
        if self._trusted.contains(ip):
            self._emit("Skipping trusted proxy", address=str(ip))
            return
        self.state = ScanState.RESOLVED
        self.resolved_address = str(ip)
        self._emit("Found untrusted address in chain", address=str(ip))

    def run(self, tokens: Sequence[Any]) -> ChainScan:
        for token in reversed(tokens):
            self.feed(token)
            if self.finished:
                break
        return self

    def result(self, tokens: Sequence[Any]) -> EvaluationResult:
        """Build the evaluation result once the scan is done."""
        valid_chain = tuple(self.valid) if self._collect else None
        invalid = tuple(self.invalid)

        if self.state is ScanState.RESOLVED:
            assert self.resolved_address is not None
            return EvaluationResult.resolved(
                self.resolved_address, ResolvedFrom.UNTRUSTED_HOP, valid_chain, invalid
            )

        if self.state is ScanState.SCANNING:
            # Every hop was trusted; the left-most entry is the best we have
            leftmost = parse_address(tokens[0])
            assert leftmost is not None
            self._emit("All addresses trusted, using left-most", address=str(leftmost))
            return EvaluationResult.resolved(
                str(leftmost), ResolvedFrom.LEFTMOST_HOP, valid_chain, invalid
            )

        return EvaluationResult.failed(FailureReason.INVALID_ADDRESS_IN_CHAIN, valid_chain, invalid)

    def _emit(self, message: str, **context: Any) -> None:
        if self._trace is not None:
            self._trace(message, context)


class TrustChainEvaluator:
    """Resolve the real client IP from a peer address and forwarded-for chain.

    Args:
        trusted_networks: Parsed set, or CIDR strings to parse
        options: Evaluation options (defaults: peer check on, list input,
            no collection)
        trace: Optional callback receiving ``(message, context)`` for each
            decision the evaluator makes. It has no influence on the outcome.

    Raises:
        InvalidNetworkConfigError: If trusted_networks contains a bad entry

    Example:
        >>> evaluator = TrustChainEvaluator(["10.0.0.0/8", "192.168.0.0/16"])
        >>> evaluator.evaluate("10.2.3.4", ["1.2.3.4", "192.168.3.4"]).address
        '1.2.3.4'
    """

    def __init__(
        self,
        trusted_networks: TrustedNetworkSet | Iterable[str] = (),
        options: EvaluatorOptions | None = None,
        trace: TraceCallback | None = None,
    ) -> None:
        if not isinstance(trusted_networks, TrustedNetworkSet):
            trusted_networks = TrustedNetworkSet.from_strings(trusted_networks)
        self.trusted_networks = trusted_networks
        self.options = options or EvaluatorOptions()
        self._trace = trace

    def evaluate(self, peer: Any = None, chain: Any = None) -> EvaluationResult:
        """Evaluate one request.

        Args:
            peer: Raw peer address (string), None when absent
            chain: Raw forwarded-for value: None, a string, a list of strings,
                or an already converted FieldValue

        Returns:
            EvaluationResult with either the resolved address or a failure
            reason
        """
        options = self.options
        peer_value = field_value(peer)
        chain_value = field_value(chain)

        peer_raw: str | None = peer_value.value if isinstance(peer_value, Single) else None
        peer_ip: IPAddress | None = None
        if options.require_peer_trust_check:
            if isinstance(peer_value, Absent):
                return EvaluationResult.failed(FailureReason.MISSING_PEER_ADDRESS)
            peer_ip = parse_address(peer_raw)
            if peer_ip is None:
                self._emit("Invalid IP address in peer address", address=peer)
                return EvaluationResult.failed(FailureReason.INVALID_PEER_ADDRESS)

        if isinstance(chain_value, Absent):
            if not options.require_peer_trust_check or peer_raw is None:
                return EvaluationResult.failed(FailureReason.MISSING_CHAIN)
            self._emit("No forwarded-for chain, using peer address", address=peer_raw)
            return EvaluationResult.resolved(peer_raw, ResolvedFrom.PEER_WITHOUT_CHAIN)

        tokens: list[Any]
        if options.chain_is_delimited_string:
            if not isinstance(chain_value, Single):
                return EvaluationResult.failed(FailureReason.CHAIN_NOT_STRING)
            tokens = split_forwarded_for(chain_value.value)
        elif isinstance(chain_value, Multiple):
            tokens = list(chain_value.values)
        else:
            # A lone value where a list was expected is a one-hop chain
            tokens = [chain_value.value]

        if is_blank(tokens):
            if peer_raw is None:
                return EvaluationResult.failed(FailureReason.MISSING_CHAIN)
            self._emit("Empty forwarded-for chain, using peer address", address=peer_raw)
            return EvaluationResult.resolved(peer_raw, ResolvedFrom.PEER_WITHOUT_CHAIN)

        if peer_ip is not None and not self.trusted_networks.contains(peer_ip):
            self._emit("Peer address isn't trusted, using peer address", address=peer_raw)
            assert peer_raw is not None
            return EvaluationResult.resolved(peer_raw, ResolvedFrom.UNTRUSTED_PEER)

        scan = ChainScan(
            self.trusted_networks,
            collect=options.collect_all_valid_addresses,
            trace=self._trace,
        )
        return scan.run(tokens).result(tokens)

    def _emit(self, message: str, **context: Any) -> None:
        if self._trace is not None:
            self._trace(message, context)


__all__ = ["ChainScan", "ScanState", "TraceCallback", "TrustChainEvaluator"]
