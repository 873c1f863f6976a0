from __future__ import annotations

import json
import types

import pytest
import requests

from cortex_cli.client import (
    DEFAULT_BULK_TIMEOUTS,
    CortexClient,
    load_http_settings,
)
from cortex_cli.errors import (
    AuthenticationError,
    ConfigurationError,
    CortexRequestError,
    CortexTimeoutError,
    CortexUnavailableError,
)


def _response(status_code: int = 200, body: object | None = None, headers: dict | None = None):
    content = b"" if body is None else json.dumps(body).encode("utf-8")

    def _json():
        if body is None:
            raise ValueError("no body")
        return body

    return types.SimpleNamespace(
        status_code=status_code,
        headers=headers or {},
        json=_json,
        text=content.decode("utf-8"),
        content=content,
    )


def _client(monkeypatch, response, captured: dict[str, object] | None = None) -> CortexClient:
    client = CortexClient(base_url="https://api.cortex.example.com/", token="tok-123")

    def fake_request(method, url, **kwargs):  # noqa: ANN001
        if captured is not None:
            captured.update(kwargs, method=method, url=url)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(client._session, "request", fake_request)
    return client


def test_request_sends_bearer_token_and_user_agent(monkeypatch) -> None:
    captured: dict[str, object] = {}
    client = _client(monkeypatch, _response(body={"ok": True}), captured)

    result = client.get("fabric/v4/projects", params={"limit": 1})

    assert result == {"ok": True}
    assert captured["method"] == "GET"
    assert captured["url"] == "https://api.cortex.example.com/fabric/v4/projects"
    assert captured["params"] == {"limit": 1}
    headers = captured["headers"]
    assert headers["Authorization"] == "Bearer tok-123"
    assert headers["user-agent"].startswith("cortex-cli/")


def test_redirects_are_never_followed(monkeypatch) -> None:
    captured: dict[str, object] = {}
    client = _client(
        monkeypatch,
        _response(302, headers={"location": "https://elsewhere.example.com"}),
        captured,
    )

    with pytest.raises(CortexRequestError, match="unexpected redirect") as excinfo:
        client.get("fabric/v4/projects")

    assert captured["allow_redirects"] is False
    assert excinfo.value.status_code == 302


def test_auth_error_header_fails_even_on_success(monkeypatch) -> None:
    client = _client(
        monkeypatch,
        _response(200, body={"ok": True}, headers={"x-auth-error": "token expired"}),
    )

    with pytest.raises(AuthenticationError, match="token expired"):
        client.get("fabric/v4/projects")


def test_unauthorized_status_is_authentication_error(monkeypatch) -> None:
    client = _client(monkeypatch, _response(401, body={"message": "invalid jwt"}))
    with pytest.raises(AuthenticationError) as excinfo:
        client.get("fabric/v4/projects")
    assert excinfo.value.status_code == 401
    assert excinfo.value.detail == "invalid jwt"


def test_server_error_carries_detail(monkeypatch) -> None:
    client = _client(monkeypatch, _response(500, body={"error": "boom"}))
    with pytest.raises(CortexRequestError, match="request failed: 500 boom") as excinfo:
        client.post("fabric/v4/projects", {"name": "p"})
    assert not isinstance(excinfo.value, AuthenticationError)
    assert excinfo.value.body == {"error": "boom"}


def test_empty_body_returns_empty_mapping(monkeypatch) -> None:
    client = _client(monkeypatch, _response(204))
    assert client.delete("fabric/v4/projects/p") == {}


def test_timeout_maps_to_timeout_error(monkeypatch) -> None:
    client = _client(monkeypatch, requests.exceptions.ReadTimeout("slow"))
    with pytest.raises(CortexTimeoutError):
        client.get("fabric/v4/projects")


def test_connection_failure_maps_to_unavailable(monkeypatch) -> None:
    client = _client(monkeypatch, requests.exceptions.ConnectionError("refused"))
    with pytest.raises(CortexUnavailableError):
        client.get("fabric/v4/projects")


def test_default_timeouts_are_used(monkeypatch) -> None:
    captured: dict[str, object] = {}
    client = _client(monkeypatch, _response(body={}), captured)
    client.get("fabric/v4/projects")
    assert captured["timeout"] == (15.0, 60.0)


def test_upload_uses_bulk_timeouts_and_streams_file(monkeypatch, tmp_path) -> None:
    captured: dict[str, object] = {}
    client = _client(monkeypatch, _response(body={"success": True}), captured)
    source = tmp_path / "data.bin"
    source.write_bytes(b"payload")

    result = client.upload_file("fabric/v4/projects/p/content/data.bin", source)

    assert result == {"success": True}
    assert captured["method"] == "POST"
    assert captured["timeout"] == (15.0, max(DEFAULT_BULK_TIMEOUTS.values()))
    assert captured["headers"]["content-type"] == "application/octet-stream"
    assert hasattr(captured["data"], "read")


def _stream(*chunks, error: Exception | None = None):
    response = _response()
    response.closed = False

    def _iter_content(chunk_size):  # noqa: ANN001
        yield from chunks
        if error is not None:
            raise error

    def _close():
        response.closed = True

    response.iter_content = _iter_content
    response.close = _close
    return response


def test_download_writes_target_and_closes_response(monkeypatch, tmp_path) -> None:
    response = _stream(b"abc", b"", b"def")
    client = _client(monkeypatch, response)
    target = tmp_path / "out" / "data.bin"

    assert client.download_file("fabric/v4/projects/p/content/data.bin", target) == target
    assert target.read_bytes() == b"abcdef"
    assert not (tmp_path / "out" / "data.bin.part").exists()
    assert response.closed


def test_interrupted_download_leaves_no_file(monkeypatch, tmp_path) -> None:
    response = _stream(b"par", error=requests.exceptions.ChunkedEncodingError("connection broken"))
    client = _client(monkeypatch, response)
    target = tmp_path / "downloads" / "data.bin"

    with pytest.raises(CortexUnavailableError, match="download interrupted"):
        client.download_file("fabric/v4/projects/p/content/data.bin", target)

    assert list(target.parent.iterdir()) == []
    assert response.closed


def test_download_read_timeout_maps_to_timeout_error(monkeypatch, tmp_path) -> None:
    response = _stream(error=requests.exceptions.ReadTimeout("slow"))
    client = _client(monkeypatch, response)
    target = tmp_path / "downloads" / "data.bin"

    with pytest.raises(CortexTimeoutError):
        client.download_file("fabric/v4/projects/p/content/data.bin", target)

    assert list(target.parent.iterdir()) == []


def test_failed_download_keeps_previous_target(monkeypatch, tmp_path) -> None:
    target = tmp_path / "data.bin"
    target.write_bytes(b"old")
    response = _stream(b"new", error=requests.exceptions.ChunkedEncodingError("reset"))
    client = _client(monkeypatch, response)

    with pytest.raises(CortexUnavailableError):
        client.download_file("fabric/v4/projects/p/content/data.bin", target)

    assert target.read_bytes() == b"old"


def test_env_overrides_are_recorded() -> None:
    settings = load_http_settings(
        {"CORTEX_TIMEOUT_CONNECT": "2", "CORTEX_BULK_TIMEOUT_SOCKET": "900", "CORTEX_RETRY_LIMIT": "3"}
    )

    assert settings.timeouts.connect == 2.0
    assert settings.timeouts.lookup == 5.0
    assert settings.bulk_timeouts.socket == 900.0
    assert settings.retry_limit == 3
    assert settings.is_overridden("CORTEX_TIMEOUT_CONNECT")
    assert not settings.is_overridden("CORTEX_TIMEOUT_LOOKUP")

    sources = {row.env_var: row.source for row in settings.describe()}
    assert sources["CORTEX_RETRY_LIMIT"] == "env"
    assert sources["CORTEX_TIMEOUT_SOCKET"] == "default"


@pytest.mark.parametrize(
    "environ",
    [
        {"CORTEX_TIMEOUT_SOCKET": "soon"},
        {"CORTEX_TIMEOUT_SOCKET": "0"},
        {"CORTEX_RETRY_LIMIT": "-1"},
        {"CORTEX_RETRY_LIMIT": "many"},
    ],
)
def test_malformed_env_values_are_rejected(environ) -> None:
    with pytest.raises(ConfigurationError):
        load_http_settings(environ)
