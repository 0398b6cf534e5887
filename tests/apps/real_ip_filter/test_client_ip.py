from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from apps.real_ip_filter.client_ip import (
    RealIpMiddleware,
    build_request_evaluator,
    get_client_ip,
)
from libs.common.exceptions import ConfigurationError
from libs.real_ip.evaluator import TrustChainEvaluator


def _request(host: str | None, headers: list[tuple[str, str]] | None = None) -> MagicMock:
    request = MagicMock()
    if host is None:
        request.client = None
    else:
        request.client.host = host
    # ASGI raw header names are lowercase
    request.headers = Headers(raw=[(k.lower().encode(), v.encode()) for k, v in headers or []])
    return request


@pytest.fixture
def evaluator(trusted_networks) -> TrustChainEvaluator:
    return build_request_evaluator(trusted_networks)


def test_extract_ip_no_headers(evaluator) -> None:
    assert get_client_ip(_request("1.2.3.4"), evaluator) == "1.2.3.4"


def test_extract_ip_trusted_proxy_single(evaluator) -> None:
    request = _request("10.0.0.1", [("X-Forwarded-For", "5.6.7.8, 10.0.0.1")])

    assert get_client_ip(request, evaluator) == "5.6.7.8"


def test_extract_ip_trusted_proxy_chain(evaluator) -> None:
    # 10.0.0.1 is the LB, 192.168.1.1 is internal, 1.2.3.4 is the real client
    request = _request("10.0.0.1", [("X-Forwarded-For", "1.2.3.4, 192.168.1.1, 10.0.0.1")])

    assert get_client_ip(request, evaluator) == "1.2.3.4"


def test_extract_ip_untrusted_direct_connection(evaluator) -> None:
    # Spoofed header from an untrusted source is ignored
    request = _request("1.2.3.4", [("X-Forwarded-For", "9.9.9.9")])

    assert get_client_ip(request, evaluator) == "1.2.3.4"


def test_extract_ip_repeated_headers(evaluator) -> None:
    request = _request(
        "10.0.0.1",
        [("X-Forwarded-For", "1.2.3.4"), ("X-Forwarded-For", "192.168.1.1")],
    )

    assert get_client_ip(request, evaluator) == "1.2.3.4"


def test_extract_ip_all_trusted_uses_leftmost(evaluator) -> None:
    request = _request("10.0.0.1", [("X-Forwarded-For", "192.168.1.2, 10.0.0.5")])

    assert get_client_ip(request, evaluator) == "192.168.1.2"


def test_extract_ip_malformed_header(evaluator) -> None:
    request = _request("10.0.0.1", [("X-Forwarded-For", "invalid-ip")])

    # Evaluation fails, so the connection address is used
    assert get_client_ip(request, evaluator) == "10.0.0.1"


def test_extract_ip_mixed_case_header_name(evaluator) -> None:
    request = _request("10.0.0.1", [("X-FORWARDED-FOR", "5.6.7.8")])

    assert request.headers.getlist("x-forwarded-for") == ["5.6.7.8"]
    assert get_client_ip(request, evaluator) == "5.6.7.8"


def test_extract_ip_no_client(evaluator) -> None:
    assert get_client_ip(_request(None), evaluator) == ""


def test_requires_string_mode(trusted_networks) -> None:
    with pytest.raises(ConfigurationError):
        get_client_ip(_request("10.0.0.1"), TrustChainEvaluator(trusted_networks))


def test_middleware_sets_request_state(trusted_networks) -> None:
    async def app(scope, receive, send):  # pragma: no cover - never reached
        raise AssertionError

    middleware = RealIpMiddleware(app, trusted_networks=trusted_networks)
    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "query_string": b"",
            "client": ("10.0.0.1", 51234),
            "headers": [(b"x-forwarded-for", b"1.2.3.4, 192.168.1.1")],
        }
    )

    async def call_next(req: Request) -> PlainTextResponse:
        return PlainTextResponse(req.state.real_ip)

    response = asyncio.run(middleware.dispatch(request, call_next))

    assert response.body == b"1.2.3.4"


def test_middleware_in_application() -> None:
    async def whoami(request: Request) -> PlainTextResponse:
        return PlainTextResponse(request.state.real_ip)

    app = Starlette(routes=[Route("/", whoami)])
    app.add_middleware(RealIpMiddleware, trusted_networks=["10.0.0.0/8"])

    with TestClient(app) as client:
        response = client.get("/", headers={"X-Forwarded-For": "1.2.3.4"})

    # The test client's connection address isn't an IP, so it is used as-is
    assert response.status_code == 200
    assert response.text == "testclient"
