from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.dependencies import get_dispatcher
from backend.app.models.tool_contracts import (
    ToolCatalogEntry,
    ToolName,
    ToolRequest,
    ToolResponse,
)
from backend.app.services.tool_dispatcher import ToolDispatcher

router = APIRouter()


def _validate_tool_name(expected_tool: ToolName, request: ToolRequest) -> None:
    if request.tool != expected_tool:
        raise HTTPException(
            status_code=400,
            detail=(
                "Request tool does not match endpoint. "
                f"expected={expected_tool} actual={request.tool}"
            ),
        )


def _handle_tool(
    expected_tool: ToolName,
    request: ToolRequest,
    dispatcher: ToolDispatcher,
) -> ToolResponse:
    _validate_tool_name(expected_tool, request)
    context_tokens = bind_contextvars(
        tool_name=expected_tool,
        tool_request_id=str(request.request_id),
    )
    try:
        return dispatcher.execute(expected_tool, request)
    finally:
        reset_contextvars(**context_tokens)


@router.get(
    "/tools", response_model=list[ToolCatalogEntry], tags=["tools"], operation_id="list_tools"
)
def list_tools(
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> list[ToolCatalogEntry]:
    return dispatcher.list_tools()


@router.post(
    "/tools/telegraph_create_account",
    response_model=ToolResponse,
    tags=["account"],
    operation_id="telegraph_create_account",
)
def telegraph_create_account(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_create_account", request, dispatcher)


@router.post(
    "/tools/telegraph_edit_account_info",
    response_model=ToolResponse,
    tags=["account"],
    operation_id="telegraph_edit_account_info",
)
def telegraph_edit_account_info(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_edit_account_info", request, dispatcher)


@router.post(
    "/tools/telegraph_get_account_info",
    response_model=ToolResponse,
    tags=["account"],
    operation_id="telegraph_get_account_info",
)
def telegraph_get_account_info(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_get_account_info", request, dispatcher)


@router.post(
    "/tools/telegraph_revoke_access_token",
    response_model=ToolResponse,
    tags=["account"],
    operation_id="telegraph_revoke_access_token",
)
def telegraph_revoke_access_token(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_revoke_access_token", request, dispatcher)


@router.post(
    "/tools/telegraph_create_page",
    response_model=ToolResponse,
    tags=["pages"],
    operation_id="telegraph_create_page",
)
def telegraph_create_page(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_create_page", request, dispatcher)


@router.post(
    "/tools/telegraph_edit_page",
    response_model=ToolResponse,
    tags=["pages"],
    operation_id="telegraph_edit_page",
)
def telegraph_edit_page(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_edit_page", request, dispatcher)


@router.post(
    "/tools/telegraph_get_page",
    response_model=ToolResponse,
    tags=["pages"],
    operation_id="telegraph_get_page",
)
def telegraph_get_page(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_get_page", request, dispatcher)


@router.post(
    "/tools/telegraph_get_page_list",
    response_model=ToolResponse,
    tags=["pages"],
    operation_id="telegraph_get_page_list",
)
def telegraph_get_page_list(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_get_page_list", request, dispatcher)


@router.post(
    "/tools/telegraph_get_views",
    response_model=ToolResponse,
    tags=["pages"],
    operation_id="telegraph_get_views",
)
def telegraph_get_views(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_get_views", request, dispatcher)


@router.post(
    "/tools/telegraph_upload_image",
    response_model=ToolResponse,
    tags=["media"],
    operation_id="telegraph_upload_image",
)
def telegraph_upload_image(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_upload_image", request, dispatcher)


@router.post(
    "/tools/telegraph_list_templates",
    response_model=ToolResponse,
    tags=["templates"],
    operation_id="telegraph_list_templates",
)
def telegraph_list_templates(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_list_templates", request, dispatcher)


@router.post(
    "/tools/telegraph_create_from_template",
    response_model=ToolResponse,
    tags=["templates"],
    operation_id="telegraph_create_from_template",
)
def telegraph_create_from_template(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_create_from_template", request, dispatcher)


@router.post(
    "/tools/telegraph_export_page",
    response_model=ToolResponse,
    tags=["export"],
    operation_id="telegraph_export_page",
)
def telegraph_export_page(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_export_page", request, dispatcher)


@router.post(
    "/tools/telegraph_backup_account",
    response_model=ToolResponse,
    tags=["export"],
    operation_id="telegraph_backup_account",
)
def telegraph_backup_account(
    request: ToolRequest,
    dispatcher: Annotated[ToolDispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    return _handle_tool("telegraph_backup_account", request, dispatcher)
