from __future__ import annotations

from typing import Any
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from telegraph_fakes import FakeTelegraphClient

from backend.app.models.tool_contracts import WRITE_TOOLS, ToolName

ALL_TOOLS: tuple[ToolName, ...] = (
    "telegraph_create_account",
    "telegraph_edit_account_info",
    "telegraph_get_account_info",
    "telegraph_revoke_access_token",
    "telegraph_create_page",
    "telegraph_edit_page",
    "telegraph_get_page",
    "telegraph_get_page_list",
    "telegraph_get_views",
    "telegraph_upload_image",
    "telegraph_list_templates",
    "telegraph_create_from_template",
    "telegraph_export_page",
    "telegraph_backup_account",
)


def _request_body(tool: str, *, payload: dict[str, Any] | None = None) -> dict[str, object]:
    return {
        "tool": tool,
        "request_id": str(uuid4()),
        "payload": payload or {},
    }


def test_health_echoes_request_id(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"] == "req-42"


def test_health_generates_request_id_when_missing(client: TestClient) -> None:
    response = client.get("/health")

    assert response.headers["X-Request-ID"]


def test_list_tools_endpoint(client: TestClient) -> None:
    response = client.get("/tools")

    assert response.status_code == 200
    entries = response.json()
    assert tuple(entry["name"] for entry in entries) == ALL_TOOLS
    assert {entry["name"] for entry in entries if entry["write_operation"]} == set(WRITE_TOOLS)


def test_every_tool_has_a_route(client: TestClient) -> None:
    paths = client.get("/openapi.json").json()["paths"]

    for tool in ALL_TOOLS:
        assert f"/tools/{tool}" in paths


@pytest.mark.parametrize("tool", ALL_TOOLS)
def test_mismatched_tool_is_rejected(client: TestClient, tool: ToolName) -> None:
    other = "telegraph_get_page" if tool != "telegraph_get_page" else "telegraph_get_views"

    response = client.post(f"/tools/{tool}", json=_request_body(other))

    assert response.status_code == 400
    assert f"expected={tool}" in response.json()["detail"]


def test_unknown_tool_name_fails_request_validation(client: TestClient) -> None:
    response = client.post("/tools/telegraph_get_page", json=_request_body("telegraph_delete_page"))

    assert response.status_code == 422


def test_create_page_over_http(client: TestClient, fake_client: FakeTelegraphClient) -> None:
    body = _request_body(
        "telegraph_create_page",
        payload={"access_token": "tok", "title": "Hello", "content": "# Hi", "format": "markdown"},
    )

    response = client.post("/tools/telegraph_create_page", json=body)

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["request_id"] == body["request_id"]
    assert data["result"]["page"]["url"] == "https://telegra.ph/Hello-10-19"
    assert data["provenance"] == [{"type": "telegraph_page", "id": "Hello-10-19"}]
    assert fake_client.pages["Hello-10-19"]["content"] == [{"tag": "h3", "children": ["Hi"]}]


def test_tool_errors_are_returned_in_the_envelope(client: TestClient) -> None:
    response = client.post(
        "/tools/telegraph_get_page",
        json=_request_body("telegraph_get_page", payload={"path": "missing"}),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is False
    assert data["error"] == {
        "code": "telegraph_api_error",
        "message": "Telegraph API error: PAGE_NOT_FOUND",
        "retryable": False,
    }
