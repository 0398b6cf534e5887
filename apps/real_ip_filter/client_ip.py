"""Client IP extraction for Starlette requests.

Uses the same trust-chain evaluation as the event filter, with the
connection address as the peer and the X-Forwarded-For header(s) as the
chain.
"""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from libs.common.exceptions import ConfigurationError
from libs.real_ip.evaluator import TrustChainEvaluator
from libs.real_ip.models import EvaluatorOptions

logger = logging.getLogger(__name__)

X_FORWARDED_FOR_HEADER = "x-forwarded-for"


def build_request_evaluator(trusted_networks: list[str]) -> TrustChainEvaluator:
    """Evaluator configured for raw X-Forwarded-For header values."""
    return TrustChainEvaluator(
        trusted_networks,
        EvaluatorOptions(chain_is_delimited_string=True),
    )


def get_client_ip(request: Request, evaluator: TrustChainEvaluator) -> str:
    """Return the real client IP of a request.

    Rules:
    - If the connection address is not trusted, X-Forwarded-For is ignored.
    - If trusted, X-Forwarded-For is walked right to left and the first
      untrusted address wins; if all are trusted, the left-most one.
    - If evaluation fails (malformed header), the connection address is used.
    - Without a connection address, returns "".

    Raises:
        ConfigurationError: If the evaluator doesn't expect delimited strings
    """
    if not evaluator.options.chain_is_delimited_string:
        raise ConfigurationError("Request evaluator must parse X-Forwarded-For as a string")

    connection_ip = request.client.host if request.client else ""
    if not connection_ip:
        return ""

    # Repeated headers are equivalent to one comma separated header
    values = request.headers.getlist(X_FORWARDED_FOR_HEADER)
    chain = ",".join(values) if values else None

    result = evaluator.evaluate(connection_ip, chain)
    if result.address is None:
        logger.warning(
            "Unable to evaluate X-Forwarded-For, using connection address",
            extra={
                "context": {
                    "remote_addr": connection_ip,
                    "x_forwarded_for": chain,
                    "reason": result.failure.value if result.failure else None,
                }
            },
        )
        return connection_ip
    return result.address


class RealIpMiddleware(BaseHTTPMiddleware):
    """Store the real client IP on ``request.state.real_ip``.

    Example:
        >>> app = Starlette()
        >>> app.add_middleware(RealIpMiddleware, trusted_networks=["10.0.0.0/8"])
    """

    def __init__(self, app: ASGIApp, trusted_networks: list[str] | None = None) -> None:
        super().__init__(app)
        self.evaluator = build_request_evaluator(trusted_networks or [])

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.real_ip = get_client_ip(request, self.evaluator)
        return await call_next(request)


__all__ = [
    "RealIpMiddleware",
    "X_FORWARDED_FOR_HEADER",
    "build_request_evaluator",
    "get_client_ip",
]
