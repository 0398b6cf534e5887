"""Real client IP resolution through trusted proxy chains."""

from libs.real_ip.chain import (
    ABSENT,
    Absent,
    FieldValue,
    Multiple,
    Single,
    Unsupported,
    field_value,
    split_forwarded_for,
)
from libs.real_ip.evaluator import ChainScan, ScanState, TrustChainEvaluator
from libs.real_ip.models import (
    EvaluationResult,
    EvaluatorOptions,
    FailureReason,
    ResolvedFrom,
)
from libs.real_ip.networks import TrustedNetworkSet, parse_network

__all__ = [
    # Networks
    "TrustedNetworkSet",
    "parse_network",
    # Field values
    "ABSENT",
    "Absent",
    "FieldValue",
    "Multiple",
    "Single",
    "Unsupported",
    "field_value",
    "split_forwarded_for",
    # Evaluation
    "ChainScan",
    "EvaluationResult",
    "EvaluatorOptions",
    "FailureReason",
    "ResolvedFrom",
    "ScanState",
    "TrustChainEvaluator",
]
