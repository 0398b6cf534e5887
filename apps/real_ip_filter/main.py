#!/usr/bin/env python3
"""Real IP filter pipeline.

Reads JSON events one per line, resolves the real client IP of each, and
writes the enriched events as JSON lines. Settings come from ``REAL_IP_*``
environment variables (or ``.env``); command line flags override them.

Exit codes:
    0 - All lines processed (malformed lines skipped)
    1 - Malformed input lines were found and --strict was given
    2 - Invalid configuration

Example:
    cat access.jsonl | python -m apps.real_ip_filter.main \\
        --remote-address-field remote_addr \\
        --x-forwarded-for-field x_fwd_for \\
        --trusted-network 10.0.0.0/8 --trusted-network 192.168.0.0/16
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import ExitStack
from typing import IO, Any

from pydantic import ValidationError

from apps.real_ip_filter.config import FilterSettings
from apps.real_ip_filter.event import Event
from apps.real_ip_filter.filter import RealIpFilter
from libs.common.exceptions import ConfigurationError
from libs.common.logging import EventContext, configure_logging, log_with_context

PIPELINE_NAME = "real_ip_filter"
STDIO = "-"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve the real client IP of JSON events behind trusted proxies"
    )
    parser.add_argument(
        "--input", "-i", default=STDIO, help="JSON lines input file (default: stdin)"
    )
    parser.add_argument(
        "--output", "-o", default=STDIO, help="JSON lines output file (default: stdout)"
    )
    parser.add_argument(
        "--trusted-network",
        dest="trusted_networks",
        action="append",
        metavar="CIDR",
        help="Trusted proxy network (repeatable)",
    )
    parser.add_argument("--remote-address-field", help="Field with the layer 3 remote address")
    parser.add_argument("--x-forwarded-for-field", help="Field with the X-Forwarded-For value")
    parser.add_argument(
        "--x-forwarded-for-is-string",
        action="store_const",
        const=True,
        help="X-Forwarded-For field is a comma-separated string",
    )
    parser.add_argument(
        "--no-check-remote-address",
        dest="check_remote_address",
        action="store_const",
        const=False,
        help="Evaluate X-Forwarded-For without checking the remote address",
    )
    parser.add_argument("--target-field", help="Field to write the real IP to")
    parser.add_argument(
        "--x-forwarded-for-target", help="Field to write all valid X-Forwarded-For addresses to"
    )
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument(
        "--strict", action="store_true", help="Exit with status 1 if any input line is malformed"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> FilterSettings:
    """Environment settings overridden by any flags that were given."""
    overrides = {
        name: getattr(args, name)
        for name in (
            "trusted_networks",
            "remote_address_field",
            "x_forwarded_for_field",
            "x_forwarded_for_is_string",
            "check_remote_address",
            "target_field",
            "x_forwarded_for_target",
            "log_level",
        )
        if getattr(args, name) is not None
    }
    return FilterSettings(**overrides)


def read_events(stream: IO[str]) -> Iterator[tuple[int, dict[str, Any] | None]]:
    """Yield (line number, event dict) pairs, None for malformed lines."""
    for lineno, line in enumerate(stream, start=1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            log_with_context(logger, "ERROR", "Malformed JSON line", line=lineno, error=str(e))
            yield lineno, None
            continue
        if not isinstance(data, dict):
            log_with_context(logger, "ERROR", "Event is not a JSON object", line=lineno)
            yield lineno, None
            continue
        yield lineno, data


def run(real_ip_filter: RealIpFilter, source: IO[str], sink: IO[str]) -> tuple[int, int]:
    """Filter every event from source into sink.

    Returns:
        (events written, malformed lines skipped)
    """
    written = skipped = 0
    for lineno, data in read_events(source):
        if data is None:
            skipped += 1
            continue
        event = Event(data)
        with EventContext(f"line-{lineno}"):
            real_ip_filter.filter(event)
        sink.write(json.dumps(event.to_dict()) + "\n")
        written += 1
    sink.flush()
    return written, skipped


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ValidationError as e:
        configure_logging(PIPELINE_NAME)
        logger.error("Invalid configuration", extra={"context": {"errors": e.errors()}})
        return 2

    configure_logging(PIPELINE_NAME, settings.log_level)

    try:
        real_ip_filter = RealIpFilter(settings)
    except ConfigurationError as e:
        logger.error("Invalid configuration", extra={"context": {"error": str(e)}})
        return 2

    # Opened after configuration succeeds; a bad config must not truncate output
    with ExitStack() as stack:
        source = (
            sys.stdin
            if args.input == STDIO
            else stack.enter_context(open(args.input, encoding="utf-8"))
        )
        sink = (
            sys.stdout
            if args.output == STDIO
            else stack.enter_context(open(args.output, "w", encoding="utf-8"))
        )
        written, skipped = run(real_ip_filter, source, sink)

    logger.info(
        "Pipeline finished",
        extra={"context": {"events": written, "skipped": skipped}},
    )
    if skipped and args.strict:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
