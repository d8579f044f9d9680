from __future__ import annotations

import json

import anyio
import httpx
import pytest

from saymon_datasource.adapters import DatasourceRequest, HTTPXTransport, TransportError


def _transport(handler, **kwargs) -> HTTPXTransport:
    return HTTPXTransport(transport=httpx.MockTransport(handler), **kwargs)


def test_request_sends_json_body_and_params():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"text": "a", "value": "b"}])

    request = DatasourceRequest(
        method="POST",
        url="http://saymon.test/search",
        params={"limit": 5},
        data={"target": "cpu"},
        headers={"Content-Type": "application/json", "X-Trace": "1"},
    )

    response = anyio.run(_transport(handler).request, request)

    assert response.status == 200
    assert response.data == [{"text": "a", "value": "b"}]
    (sent,) = seen
    assert str(sent.url) == "http://saymon.test/search?limit=5"
    assert sent.headers["X-Trace"] == "1"
    assert json.loads(sent.content) == {"target": "cpu"}


@pytest.mark.parametrize(("with_credentials", "expected"), [(True, "session=abc"), (False, None)])
def test_cookies_follow_credential_flag(with_credentials, expected):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    transport = _transport(handler, cookies={"session": "abc"})
    request = DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags", with_credentials=with_credentials)

    anyio.run(transport.request, request)

    assert seen[0].headers.get("Cookie") == expected


def test_empty_body_decodes_to_none():
    transport = _transport(lambda request: httpx.Response(204))

    response = anyio.run(transport.request, DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags"))

    assert response.status == 204
    assert response.data is None


def test_error_status_raises_transport_error():
    transport = _transport(lambda request: httpx.Response(503, text="maintenance"))

    with pytest.raises(TransportError) as excinfo:
        anyio.run(transport.request, DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags"))

    assert excinfo.value.status_code == 503
    assert "maintenance" in str(excinfo.value)


def test_invalid_json_raises_transport_error():
    transport = _transport(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(TransportError, match="decode JSON"):
        anyio.run(transport.request, DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags"))


def test_non_json_body_on_other_success_status_decodes_to_none():
    transport = _transport(lambda request: httpx.Response(202, text="Accepted"))

    response = anyio.run(transport.request, DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags"))

    assert response.status == 202
    assert response.data is None


def test_network_error_is_not_retried_by_default():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError, match="connection refused"):
        anyio.run(_transport(handler).request, DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags"))

    assert len(calls) == 1


def test_network_error_retried_when_configured():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=["ok"])

    response = anyio.run(
        _transport(handler, max_attempts=2).request,
        DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags"),
    )

    assert response.data == ["ok"]
    assert len(calls) == 2


@pytest.mark.parametrize("error", [httpx.InvalidURL("Invalid port: 'abc'"), httpx.CookieConflict("Multiple cookies exist with name=session")])
def test_client_side_httpx_errors_become_transport_errors(error):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error

    with pytest.raises(TransportError) as excinfo:
        anyio.run(_transport(handler).request, DatasourceRequest(method="GET", url="http://saymon.test/node/api/tags"))

    assert excinfo.value.__cause__ is error
    assert excinfo.value.status_code is None
