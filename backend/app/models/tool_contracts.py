from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

ToolName = Literal[
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
]

WRITE_TOOLS: frozenset[str] = frozenset(
    {
        "telegraph_create_account",
        "telegraph_edit_account_info",
        "telegraph_revoke_access_token",
        "telegraph_create_page",
        "telegraph_edit_page",
        "telegraph_upload_image",
        "telegraph_create_from_template",
    }
)


class ToolRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tool: ToolName
    request_id: UUID
    payload: dict[str, Any] = Field(default_factory=dict)


class ProvenanceRef(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str
    id: str


class ToolError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    retryable: bool = False


def _default_result() -> dict[str, Any]:
    return {}


def _default_provenance() -> list[ProvenanceRef]:
    return []


class ToolResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    request_id: UUID
    result: dict[str, Any] = Field(default_factory=_default_result)
    provenance: list[ProvenanceRef] = Field(default_factory=_default_provenance)
    error: ToolError | None = None


class ToolCatalogEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: ToolName
    description: str
    write_operation: bool
    input_schema: dict[str, Any] = Field(default_factory=dict)
