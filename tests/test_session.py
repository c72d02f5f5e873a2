from __future__ import annotations

import base64

import httpx
import pytest

from asvo_client.config import Settings
from asvo_client.domain.errors import AsvoApiError, AuthenticationError, ProtocolDecodeError
from asvo_client.infrastructure.session import AsvoSession, build_session_factory
from conftest import BASE_URL, json_response


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"api_key": "secret-key", "base_url": BASE_URL}
    values.update(overrides)
    return Settings(**values)


def test_login_posts_basic_auth_and_keeps_cookies() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/api/login":
            return httpx.Response(200, headers={"set-cookie": "session=abc123; Path=/"})
        return json_response([])

    session = AsvoSession.login(_settings(), transport=httpx.MockTransport(handler))
    try:
        assert session.get_json("/api/get_jobs") == []
    finally:
        session.close()

    login, listing = requests
    assert login.method == "POST"
    assert str(login.url) == f"{BASE_URL}/api/login"
    expected = base64.b64encode(b"mantaray-clientv1.0:secret-key").decode()
    assert login.headers["authorization"] == f"Basic {expected}"
    assert listing.headers["cookie"] == "session=abc123"


def test_login_without_api_key_fails_before_any_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(AuthenticationError, match="MWA_ASVO_API_KEY"):
        AsvoSession.login(_settings(api_key=None), transport=httpx.MockTransport(handler))


def test_rejected_login_raises_authentication_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response({"error": "Invalid API key"}, status_code=401)

    with pytest.raises(AuthenticationError, match="Invalid API key"):
        AsvoSession.login(_settings(), transport=httpx.MockTransport(handler))


def test_transport_failure_is_reported_as_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AsvoApiError, match="connection refused"):
        AsvoSession.login(_settings(), transport=httpx.MockTransport(handler))


def test_get_json_rejects_non_json_body(session_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(ProtocolDecodeError):
        session_for(handler).get_json("/api/get_jobs")


def test_error_detail_falls_back_to_body_text(session_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    with pytest.raises(AsvoApiError, match="Bad gateway") as exc_info:
        session_for(handler).get_json("/api/get_jobs")

    assert exc_info.value.status_code == 502


def test_stream_sends_headers_and_yields_response(session_for) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(206, content=b"world")

    session = session_for(handler)
    with session.stream(f"{BASE_URL}/objects/a.tar", headers={"Range": "bytes=6-10"}) as response:
        assert response.status_code == 206
        assert b"".join(response.iter_bytes()) == b"world"

    assert seen[0].headers["range"] == "bytes=6-10"


def test_session_factory_logs_in_a_fresh_session_each_call() -> None:
    logins: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        logins.append(1)
        return httpx.Response(200)

    factory = build_session_factory(_settings(), transport=httpx.MockTransport(handler))
    first = factory()
    second = factory()
    try:
        assert first is not second
        assert len(logins) == 2
    finally:
        first.close()
        second.close()
