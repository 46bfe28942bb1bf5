from __future__ import annotations

import io
import json
from collections.abc import Mapping
from email.message import Message
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs
from urllib.request import Request

import pytest

from backend.app.services.telegraph_client import (
    TelegraphApiError,
    TelegraphClient,
    guess_upload_content_type,
)
from backend.app.telemetry import TelemetryClient


class _FakeResponse:
    def __init__(self, body: Any) -> None:
        self._body = body if isinstance(body, str) else json.dumps(body)

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *_args: object) -> None:
        return None

    def read(self) -> bytes:
        return self._body.encode("utf-8")


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))


def _client(telemetry: TelemetryClient | None = None) -> TelegraphClient:
    return TelegraphClient(
        api_base_url="https://api.telegra.ph/",
        upload_url="https://telegra.ph/upload",
        file_base_url="https://telegra.ph",
        http_timeout_seconds=5,
        user_agent="telegraph-tools-test",
        telemetry=telemetry,
    )


def _install_urlopen(
    monkeypatch: pytest.MonkeyPatch,
    answer: Any,
) -> list[Request]:
    requests: list[Request] = []

    def _fake_urlopen(request: Request, timeout: float) -> _FakeResponse:
        assert timeout == 5
        requests.append(request)
        if isinstance(answer, Exception):
            raise answer
        return _FakeResponse(answer)

    monkeypatch.setattr("backend.app.services.telegraph_client.urlopen", _fake_urlopen)
    return requests


def _form(request: Request) -> dict[str, list[str]]:
    assert isinstance(request.data, bytes)
    return parse_qs(request.data.decode("utf-8"))


def test_call_posts_form_encoded_parameters(monkeypatch: pytest.MonkeyPatch) -> None:
    requests = _install_urlopen(
        monkeypatch,
        {"ok": True, "result": {"path": "T-10-19", "url": "https://telegra.ph/T-10-19", "title": "T"}},
    )

    page = _client().create_page(
        access_token="tok",
        title="T",
        content=[{"tag": "p", "children": ["x"]}],
    )

    assert page.path == "T-10-19"
    assert page.views == 0
    request = requests[0]
    assert request.full_url == "https://api.telegra.ph/createPage"
    assert request.get_method() == "POST"
    assert request.get_header("Content-type") == "application/x-www-form-urlencoded"
    assert request.get_header("User-agent") == "telegraph-tools-test"
    form = _form(request)
    assert form["title"] == ["T"]
    assert form["return_content"] == ["false"]
    assert json.loads(form["content"][0]) == [{"tag": "p", "children": ["x"]}]
    assert "author_name" not in form


def test_account_fields_are_sent_as_json(monkeypatch: pytest.MonkeyPatch) -> None:
    requests = _install_urlopen(monkeypatch, {"ok": True, "result": {"page_count": 4}})

    account = _client().get_account_info(access_token="tok", fields=["page_count"])

    assert account.page_count == 4
    assert _form(requests[0])["fields"] == ['["page_count"]']


def test_rejected_call_raises_with_api_error_text(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_urlopen(monkeypatch, {"ok": False, "error": "ACCESS_TOKEN_INVALID"})

    with pytest.raises(TelegraphApiError) as exc_info:
        _client().get_page_list(access_token="bad")

    assert str(exc_info.value) == "ACCESS_TOKEN_INVALID"
    assert exc_info.value.retryable is False
    assert exc_info.value.status_code is None


def test_flood_wait_is_retryable(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_urlopen(monkeypatch, {"ok": False, "error": "FLOOD_WAIT_7"})

    with pytest.raises(TelegraphApiError) as exc_info:
        _client().create_account(short_name="bot")

    assert exc_info.value.retryable is True


def test_missing_result_object(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_urlopen(monkeypatch, {"ok": True, "result": "nope"})

    with pytest.raises(TelegraphApiError, match="getViews answer missing result object"):
        _client().get_views(path="p")


def test_result_with_unexpected_shape(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_urlopen(monkeypatch, {"ok": True, "result": {"path": "p"}})

    with pytest.raises(TelegraphApiError, match="getPage answer has an unexpected shape"):
        _client().get_page(path="p")


def test_http_error_maps_status_and_retryability(monkeypatch: pytest.MonkeyPatch) -> None:
    error = HTTPError(
        "https://api.telegra.ph/getPage",
        502,
        "Bad Gateway",
        Message(),
        io.BytesIO(b""),
    )
    _install_urlopen(monkeypatch, error)

    with pytest.raises(TelegraphApiError) as exc_info:
        _client().get_page(path="p")

    assert str(exc_info.value) == "HTTP error: 502 Bad Gateway"
    assert exc_info.value.status_code == 502
    assert exc_info.value.retryable is True


def test_http_error_prefers_error_text_from_body(monkeypatch: pytest.MonkeyPatch) -> None:
    error = HTTPError(
        "https://api.telegra.ph/getPage",
        400,
        "Bad Request",
        Message(),
        io.BytesIO(b'{"ok": false, "error": "PAGE_NOT_FOUND"}'),
    )
    _install_urlopen(monkeypatch, error)

    with pytest.raises(TelegraphApiError) as exc_info:
        _client().get_page(path="p")

    assert str(exc_info.value) == "PAGE_NOT_FOUND"
    assert exc_info.value.retryable is False


def test_network_failure_is_retryable(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_urlopen(monkeypatch, URLError("connection refused"))

    with pytest.raises(TelegraphApiError) as exc_info:
        _client().get_page(path="p")

    assert str(exc_info.value) == "Telegraph request failed: connection refused"
    assert exc_info.value.retryable is True


def test_every_request_emits_telemetry(monkeypatch: pytest.MonkeyPatch) -> None:
    sink = _CaptureSink()
    _install_urlopen(monkeypatch, {"ok": False, "error": "PAGE_NOT_FOUND"})

    with pytest.raises(TelegraphApiError):
        _client(TelemetryClient(enabled=True, sink=sink)).get_page(path="p")

    assert len(sink.events) == 1
    event_name, attributes = sink.events[0]
    assert event_name == "telegraph.api.request"
    assert attributes["api_method"] == "getPage"
    assert attributes["outcome"] == "ok"
    assert isinstance(attributes["duration_ms"], float)


def test_upload_returns_public_url(monkeypatch: pytest.MonkeyPatch) -> None:
    requests = _install_urlopen(monkeypatch, [{"src": "/file/abc.png"}])

    url = _client().upload_file(b"\x89PNG", filename="cat.png", content_type="image/png")

    assert url == "https://telegra.ph/file/abc.png"
    request = requests[0]
    assert request.full_url == "https://telegra.ph/upload"
    content_type = request.get_header("Content-type")
    assert content_type is not None
    assert content_type.startswith("multipart/form-data; boundary=telegraph-tools-")
    assert isinstance(request.data, bytes)
    assert b'name="file"; filename="cat.png"' in request.data
    assert b"Content-Type: image/png" in request.data
    assert b"\x89PNG" in request.data


def test_upload_body_matches_boundary_and_cleans_filename(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    requests = _install_urlopen(monkeypatch, [{"src": "/file/x.png"}])
    client = _client()

    client.upload_file(b"data", filename='a"b\r\n.png', content_type="image/png")
    client.upload_file(b"data", filename='"\r\n', content_type="image/png")

    first, second = requests
    content_type = first.get_header("Content-type")
    assert content_type is not None
    boundary = content_type.split("boundary=", 1)[1]
    assert isinstance(first.data, bytes)
    assert first.data.startswith(f"--{boundary}\r\n".encode())
    assert first.data.endswith(f"\r\n--{boundary}--\r\n".encode())
    assert b'filename="ab.png"\r\n' in first.data
    assert first.data.count(b"\r\n") == 6
    assert isinstance(second.data, bytes)
    assert b'filename="upload"' in second.data
    assert second.get_header("Content-type") != content_type


def test_upload_error_answer(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_urlopen(monkeypatch, {"error": "File type invalid"})

    with pytest.raises(TelegraphApiError, match="Upload error: File type invalid"):
        _client().upload_file(b"x", filename="x.bin", content_type="image/png")


def test_upload_without_source(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_urlopen(monkeypatch, [])

    with pytest.raises(TelegraphApiError, match="Upload failed: No source returned"):
        _client().upload_file(b"x", filename="x.png", content_type="image/png")


def test_guess_upload_content_type() -> None:
    assert guess_upload_content_type("photo.JPG") == "image/jpeg"
    assert guess_upload_content_type("clip.mp4") == "video/mp4"
    assert guess_upload_content_type("notes.txt") == "application/octet-stream"
