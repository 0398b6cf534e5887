"""Prometheus metrics for the real IP filter."""

from __future__ import annotations

from prometheus_client import Counter

from libs.real_ip.models import EvaluationResult

evaluations_total = Counter(
    "real_ip_evaluations_total",
    "Real IP evaluations by outcome (resolution source or failure reason)",
    ["outcome"],
)

invalid_addresses_total = Counter(
    "real_ip_invalid_addresses_total",
    "X-Forwarded-For entries that were not valid IP addresses",
)


def outcome_label(result: EvaluationResult) -> str:
    if result.failure is not None:
        return result.failure.value
    assert result.resolved_from is not None
    return result.resolved_from.value


def record_evaluation(result: EvaluationResult) -> None:
    evaluations_total.labels(outcome=outcome_label(result)).inc()
    if result.invalid_addresses:
        invalid_addresses_total.inc(len(result.invalid_addresses))


__all__ = [
    "evaluations_total",
    "invalid_addresses_total",
    "outcome_label",
    "record_evaluation",
]
