from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, cast
from uuid import UUID

from pydantic import BaseModel, ValidationError

from backend.app.config import TELEGRAPH_CONTENT_LIMIT_BYTES
from backend.app.models.telegraph_contracts import (
    BackupAccountInput,
    ContentValue,
    CreateAccountInput,
    CreateFromTemplateInput,
    CreatePageInput,
    EditAccountInfoInput,
    EditPageInput,
    ExportPageInput,
    GetAccountInfoInput,
    GetPageInput,
    GetPageListInput,
    GetViewsInput,
    ListTemplatesInput,
    Page,
    RevokeAccessTokenInput,
    UploadImageInput,
)
from backend.app.models.tool_contracts import (
    WRITE_TOOLS,
    ProvenanceRef,
    ToolCatalogEntry,
    ToolError,
    ToolName,
    ToolRequest,
    ToolResponse,
)
from backend.app.services.content_nodes import ContentFormat, ContentNode, disallowed_tags
from backend.app.services.content_normalizer import normalize_content
from backend.app.services.node_serializers import serialize_nodes
from backend.app.services.page_templates import (
    UnknownTemplateError,
    list_templates,
    render_template,
)
from backend.app.services.telegraph_client import (
    TelegraphApiError,
    TelegraphClient,
    guess_upload_content_type,
)
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("telegraph_tools.dispatcher")

TOOL_DESCRIPTIONS: dict[ToolName, str] = {
    "telegraph_create_account": (
        "Create a new Telegraph account. Returns an Account with the access_token "
        "that later calls need."
    ),
    "telegraph_edit_account_info": "Update the name and profile link of a Telegraph account.",
    "telegraph_get_account_info": "Get information about a Telegraph account.",
    "telegraph_revoke_access_token": (
        "Revoke the access_token and issue a new one. The old token stops working immediately."
    ),
    "telegraph_create_page": (
        "Create a Telegraph page from HTML, Markdown (payload.format='markdown') "
        "or a node array. Returns the Page including its URL."
    ),
    "telegraph_edit_page": "Replace the title and content of an existing Telegraph page.",
    "telegraph_get_page": "Get a Telegraph page, optionally with its content nodes.",
    "telegraph_get_page_list": "List pages belonging to a Telegraph account, newest first.",
    "telegraph_get_views": "Get view counts for a page, optionally for a year/month/day/hour.",
    "telegraph_upload_image": (
        "Upload an image or video (local file_path, or base64 + content_type) "
        "and return its Telegraph URL."
    ),
    "telegraph_list_templates": "List the available page templates and their fields.",
    "telegraph_create_from_template": "Create a Telegraph page by filling a named template.",
    "telegraph_export_page": "Export a Telegraph page as Markdown or HTML.",
    "telegraph_backup_account": "Export every page of an account as Markdown or HTML.",
}

TOOL_INPUT_MODELS: dict[ToolName, type[BaseModel]] = {
    "telegraph_create_account": CreateAccountInput,
    "telegraph_edit_account_info": EditAccountInfoInput,
    "telegraph_get_account_info": GetAccountInfoInput,
    "telegraph_revoke_access_token": RevokeAccessTokenInput,
    "telegraph_create_page": CreatePageInput,
    "telegraph_edit_page": EditPageInput,
    "telegraph_get_page": GetPageInput,
    "telegraph_get_page_list": GetPageListInput,
    "telegraph_get_views": GetViewsInput,
    "telegraph_upload_image": UploadImageInput,
    "telegraph_list_templates": ListTemplatesInput,
    "telegraph_create_from_template": CreateFromTemplateInput,
    "telegraph_export_page": ExportPageInput,
    "telegraph_backup_account": BackupAccountInput,
}


class ToolDispatcher:
    def __init__(
        self,
        *,
        telegraph_client: TelegraphClient,
        telemetry: TelemetryClient | None = None,
        max_content_bytes: int = TELEGRAPH_CONTENT_LIMIT_BYTES,
        backup_default_limit: int = 50,
    ) -> None:
        self._client = telegraph_client
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()
        self._max_content_bytes = max(1, max_content_bytes)
        self._backup_default_limit = max(1, min(200, backup_default_limit))

    def list_tools(self) -> list[ToolCatalogEntry]:
        return [
            ToolCatalogEntry(
                name=name,
                description=description,
                write_operation=name in WRITE_TOOLS,
                input_schema=TOOL_INPUT_MODELS[name].model_json_schema(),
            )
            for name, description in TOOL_DESCRIPTIONS.items()
        ]

    def execute(self, tool_name: ToolName, request: ToolRequest) -> ToolResponse:
        with self._telemetry.span(
            "tool.execute",
            tool_name=tool_name,
            request_id=str(request.request_id),
            write_operation=tool_name in WRITE_TOOLS,
        ) as span:
            response = self._execute_tool(tool_name, request)
            span.set(
                outcome="ok" if response.ok else "error",
                error_code=response.error.code if response.error is not None else None,
            )
        return response

    def _execute_tool(self, tool_name: ToolName, request: ToolRequest) -> ToolResponse:
        try:
            return self._route(tool_name, request)
        except ValidationError as exc:
            return _tool_error_response(
                request_id=request.request_id,
                tool=tool_name,
                code="invalid_input",
                message=_format_validation_error(exc),
            )
        except TelegraphApiError as exc:
            LOGGER.warning(
                "telegraph call failed tool=%s status=%s retryable=%s error=%s",
                tool_name,
                exc.status_code,
                exc.retryable,
                exc,
            )
            return _tool_error_response(
                request_id=request.request_id,
                tool=tool_name,
                code="telegraph_api_error",
                message=f"Telegraph API error: {exc}",
                retryable=exc.retryable,
            )

    def _route(self, tool_name: ToolName, request: ToolRequest) -> ToolResponse:
        if tool_name == "telegraph_create_account":
            return self._handle_create_account(request)
        if tool_name == "telegraph_edit_account_info":
            return self._handle_edit_account_info(request)
        if tool_name == "telegraph_get_account_info":
            return self._handle_get_account_info(request)
        if tool_name == "telegraph_revoke_access_token":
            return self._handle_revoke_access_token(request)
        if tool_name == "telegraph_create_page":
            return self._handle_create_page(request)
        if tool_name == "telegraph_edit_page":
            return self._handle_edit_page(request)
        if tool_name == "telegraph_get_page":
            return self._handle_get_page(request)
        if tool_name == "telegraph_get_page_list":
            return self._handle_get_page_list(request)
        if tool_name == "telegraph_get_views":
            return self._handle_get_views(request)
        if tool_name == "telegraph_upload_image":
            return self._handle_upload_image(request)
        if tool_name == "telegraph_list_templates":
            return self._handle_list_templates(request)
        if tool_name == "telegraph_create_from_template":
            return self._handle_create_from_template(request)
        if tool_name == "telegraph_export_page":
            return self._handle_export_page(request)
        return self._handle_backup_account(request)

    def _handle_create_account(self, request: ToolRequest) -> ToolResponse:
        payload = CreateAccountInput.model_validate(request.payload)
        account = self._client.create_account(
            short_name=payload.short_name,
            author_name=payload.author_name,
            author_url=payload.author_url,
        )
        return _ok_response(
            request,
            status="created",
            result={"account": account.model_dump(exclude_none=True)},
        )

    def _handle_edit_account_info(self, request: ToolRequest) -> ToolResponse:
        payload = EditAccountInfoInput.model_validate(request.payload)
        account = self._client.edit_account_info(
            access_token=payload.access_token,
            short_name=payload.short_name,
            author_name=payload.author_name,
            author_url=payload.author_url,
        )
        return _ok_response(
            request,
            status="updated",
            result={"account": account.model_dump(exclude_none=True)},
        )

    def _handle_get_account_info(self, request: ToolRequest) -> ToolResponse:
        payload = GetAccountInfoInput.model_validate(request.payload)
        fields = list(payload.fields) if payload.fields is not None else None
        account = self._client.get_account_info(access_token=payload.access_token, fields=fields)
        return _ok_response(
            request,
            status="ok",
            result={"account": account.model_dump(exclude_none=True)},
        )

    def _handle_revoke_access_token(self, request: ToolRequest) -> ToolResponse:
        payload = RevokeAccessTokenInput.model_validate(request.payload)
        account = self._client.revoke_access_token(access_token=payload.access_token)
        return _ok_response(
            request,
            status="revoked",
            result={"account": account.model_dump(exclude_none=True)},
        )

    def _handle_create_page(self, request: ToolRequest) -> ToolResponse:
        payload = CreatePageInput.model_validate(request.payload)
        nodes = self._prepare_content(payload.content, payload.format)
        oversize = self._content_size_error(request, nodes)
        if oversize is not None:
            return oversize
        page = self._client.create_page(
            access_token=payload.access_token,
            title=payload.title,
            content=nodes,
            author_name=payload.author_name,
            author_url=payload.author_url,
            return_content=payload.return_content,
        )
        return _page_response(request, page, status="created")

    def _handle_edit_page(self, request: ToolRequest) -> ToolResponse:
        payload = EditPageInput.model_validate(request.payload)
        nodes = self._prepare_content(payload.content, payload.format)
        oversize = self._content_size_error(request, nodes)
        if oversize is not None:
            return oversize
        page = self._client.edit_page(
            access_token=payload.access_token,
            path=payload.path,
            title=payload.title,
            content=nodes,
            author_name=payload.author_name,
            author_url=payload.author_url,
            return_content=payload.return_content,
        )
        return _page_response(request, page, status="updated")

    def _handle_get_page(self, request: ToolRequest) -> ToolResponse:
        payload = GetPageInput.model_validate(request.payload)
        page = self._client.get_page(path=payload.path, return_content=payload.return_content)
        return _page_response(request, page, status="ok")

    def _handle_get_page_list(self, request: ToolRequest) -> ToolResponse:
        payload = GetPageListInput.model_validate(request.payload)
        page_list = self._client.get_page_list(
            access_token=payload.access_token,
            offset=payload.offset,
            limit=payload.limit,
        )
        return _ok_response(
            request,
            status="ok",
            result={
                "total_count": page_list.total_count,
                "pages": [page.model_dump(exclude_none=True) for page in page_list.pages],
            },
            provenance=[_page_provenance(page) for page in page_list.pages],
        )

    def _handle_get_views(self, request: ToolRequest) -> ToolResponse:
        payload = GetViewsInput.model_validate(request.payload)
        views = self._client.get_views(
            path=payload.path,
            year=payload.year,
            month=payload.month,
            day=payload.day,
            hour=payload.hour,
        )
        return _ok_response(
            request,
            status="ok",
            result={"path": payload.path, "views": views.views},
            provenance=[ProvenanceRef(type="telegraph_page", id=payload.path)],
        )

    def _handle_upload_image(self, request: ToolRequest) -> ToolResponse:
        payload = UploadImageInput.model_validate(request.payload)
        if payload.file_path:
            file_path = Path(payload.file_path).expanduser()
            if not file_path.is_file():
                return _tool_error_response(
                    request_id=request.request_id,
                    tool=request.tool,
                    code="file_not_found",
                    message=f"File not found: {payload.file_path}",
                )
            data = file_path.read_bytes()
            filename = file_path.name
            content_type = guess_upload_content_type(filename)
        else:
            try:
                data = base64.b64decode(payload.base64 or "", validate=True)
            except (binascii.Error, ValueError):
                return _tool_error_response(
                    request_id=request.request_id,
                    tool=request.tool,
                    code="invalid_input",
                    message="Validation error: base64: not valid base64 data",
                )
            filename = payload.filename or "upload"
            content_type = payload.content_type or guess_upload_content_type(filename)

        url = self._client.upload_file(data, filename=filename, content_type=content_type)
        return _ok_response(
            request,
            status="uploaded",
            result={"url": url, "message": "Image uploaded successfully"},
            provenance=[ProvenanceRef(type="telegraph_file", id=url)],
        )

    def _handle_list_templates(self, request: ToolRequest) -> ToolResponse:
        ListTemplatesInput.model_validate(request.payload)
        return _ok_response(request, status="ok", result={"templates": list_templates()})

    def _handle_create_from_template(self, request: ToolRequest) -> ToolResponse:
        payload = CreateFromTemplateInput.model_validate(request.payload)
        try:
            html = render_template(payload.template, payload.data)
        except UnknownTemplateError as exc:
            return _tool_error_response(
                request_id=request.request_id,
                tool=request.tool,
                code="invalid_input",
                message=str(exc),
            )
        except ValidationError as exc:
            return _tool_error_response(
                request_id=request.request_id,
                tool=request.tool,
                code="invalid_input",
                message=_format_validation_error(exc, prefix=("data",)),
            )

        nodes = self._prepare_content(html, "html")
        oversize = self._content_size_error(request, nodes)
        if oversize is not None:
            return oversize
        page = self._client.create_page(
            access_token=payload.access_token,
            title=payload.title,
            content=nodes,
            author_name=payload.author_name,
            author_url=payload.author_url,
            return_content=payload.return_content,
        )
        response = _page_response(request, page, status="created")
        response.result["template"] = payload.template
        return response

    def _handle_export_page(self, request: ToolRequest) -> ToolResponse:
        payload = ExportPageInput.model_validate(request.payload)
        page = self._client.get_page(path=payload.path, return_content=True)
        if not page.content:
            return _tool_error_response(
                request_id=request.request_id,
                tool=request.tool,
                code="empty_content",
                message=f"Page has no content: {page.path}",
            )
        return _ok_response(
            request,
            status="exported",
            result={
                "title": page.title,
                "path": page.path,
                "url": page.url,
                "format": payload.format,
                "content": _export_content(page, payload.format),
            },
            provenance=[_page_provenance(page)],
        )

    def _handle_backup_account(self, request: ToolRequest) -> ToolResponse:
        payload = BackupAccountInput.model_validate(request.payload)
        limit = payload.limit if payload.limit is not None else self._backup_default_limit
        page_list = self._client.get_page_list(
            access_token=payload.access_token,
            offset=0,
            limit=limit,
        )

        exported: list[dict[str, Any]] = []
        for listed_page in page_list.pages:
            page = self._client.get_page(path=listed_page.path, return_content=True)
            exported.append(
                {
                    "title": page.title,
                    "path": page.path,
                    "url": page.url,
                    "content": _export_content(page, payload.format),
                }
            )

        LOGGER.info(
            "account backup exported pages=%s total=%s format=%s",
            len(exported),
            page_list.total_count,
            payload.format,
        )
        return _ok_response(
            request,
            status="exported",
            result={
                "total_count": page_list.total_count,
                "exported_count": len(exported),
                "format": payload.format,
                "pages": exported,
            },
            provenance=[ProvenanceRef(type="telegraph_page", id=item["path"]) for item in exported],
        )

    def _prepare_content(
        self,
        content: ContentValue,
        content_format: ContentFormat,
    ) -> list[ContentNode]:
        nodes = normalize_content(cast(str | list[ContentNode], content), content_format)
        unsupported = disallowed_tags(nodes)
        if unsupported:
            LOGGER.warning(
                "content uses tags telegraph will not render tags=%s",
                ",".join(unsupported),
            )
        return nodes

    def _content_size_error(
        self,
        request: ToolRequest,
        nodes: list[ContentNode],
    ) -> ToolResponse | None:
        size = len(json.dumps(nodes, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))
        if size <= self._max_content_bytes:
            return None
        return _tool_error_response(
            request_id=request.request_id,
            tool=request.tool,
            code="content_too_large",
            message=(
                f"Content is {size} bytes once converted; "
                f"Telegraph accepts at most {self._max_content_bytes} bytes."
            ),
            result_updates={"content_bytes": size, "max_content_bytes": self._max_content_bytes},
        )


def _ok_response(
    request: ToolRequest,
    *,
    status: str,
    result: dict[str, Any],
    provenance: list[ProvenanceRef] | None = None,
) -> ToolResponse:
    return ToolResponse(
        ok=True,
        request_id=request.request_id,
        result={"tool": request.tool, "status": status, **result},
        provenance=provenance or [],
        error=None,
    )


def _page_response(request: ToolRequest, page: Page, *, status: str) -> ToolResponse:
    return _ok_response(
        request,
        status=status,
        result={"page": page.model_dump(exclude_none=True)},
        provenance=[_page_provenance(page)],
    )


def _page_provenance(page: Page) -> ProvenanceRef:
    return ProvenanceRef(type="telegraph_page", id=page.path)


def _export_content(page: Page, content_format: ContentFormat) -> str:
    if not page.content:
        return ""
    return serialize_nodes(cast(list[ContentNode], page.content), content_format)


def _tool_error_response(
    *,
    request_id: UUID,
    tool: ToolName,
    code: str,
    message: str,
    retryable: bool = False,
    result_updates: dict[str, Any] | None = None,
) -> ToolResponse:
    result: dict[str, Any] = {"tool": tool, "status": "failed"}
    if result_updates:
        result.update(result_updates)
    return ToolResponse(
        ok=False,
        request_id=request_id,
        result=result,
        error=ToolError(code=code, message=message, retryable=retryable),
    )


def _format_validation_error(exc: ValidationError, *, prefix: tuple[str, ...] = ()) -> str:
    details: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in (*prefix, *error["loc"]))
        details.append(f"{location}: {error['msg']}" if location else error["msg"])
    return f"Validation error: {', '.join(details)}"
