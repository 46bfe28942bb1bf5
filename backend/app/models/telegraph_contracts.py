from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backend.app.services.content_nodes import ContentFormat

AccountField = Literal["short_name", "author_name", "author_url", "auth_url", "page_count"]
UploadContentType = Literal["image/jpeg", "image/png", "image/gif", "video/mp4"]

# Node trees cross the wire as plain JSON; the pipeline gives them structure.
WireNode = str | dict[str, Any]
ContentValue = str | list[WireNode]


class Account(BaseModel):
    model_config = ConfigDict(extra="ignore")

    short_name: str | None = None
    author_name: str | None = None
    author_url: str | None = None
    access_token: str | None = None
    auth_url: str | None = None
    page_count: int | None = None


class Page(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str
    url: str
    title: str
    description: str = ""
    author_name: str | None = None
    author_url: str | None = None
    image_url: str | None = None
    content: list[WireNode] | None = None
    views: int = 0
    can_edit: bool | None = None


class PageList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_count: int
    pages: list[Page] = Field(default_factory=list)


class PageViews(BaseModel):
    model_config = ConfigDict(extra="ignore")

    views: int


class _ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class CreateAccountInput(_ToolInput):
    short_name: str = Field(min_length=1, max_length=32, description="Account name.")
    author_name: str | None = Field(default=None, max_length=128)
    author_url: str | None = Field(default=None, max_length=512)


class EditAccountInfoInput(_ToolInput):
    access_token: str = Field(min_length=1)
    short_name: str | None = Field(default=None, min_length=1, max_length=32)
    author_name: str | None = Field(default=None, max_length=128)
    author_url: str | None = Field(default=None, max_length=512)


class GetAccountInfoInput(_ToolInput):
    access_token: str = Field(min_length=1)
    fields: list[AccountField] | None = Field(
        default=None,
        description="Account fields to return; Telegraph defaults to the name fields.",
    )


class RevokeAccessTokenInput(_ToolInput):
    access_token: str = Field(min_length=1)


class CreatePageInput(_ToolInput):
    access_token: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=256)
    content: ContentValue = Field(
        description="HTML or Markdown string, a JSON-encoded node array, or a node list.",
    )
    format: ContentFormat = "html"
    author_name: str | None = Field(default=None, max_length=128)
    author_url: str | None = Field(default=None, max_length=512)
    return_content: bool = False


class EditPageInput(CreatePageInput):
    path: str = Field(min_length=1)


class GetPageInput(_ToolInput):
    path: str = Field(min_length=1)
    return_content: bool = False


class GetPageListInput(_ToolInput):
    access_token: str = Field(min_length=1)
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=0, le=200)


class GetViewsInput(_ToolInput):
    path: str = Field(min_length=1)
    year: int | None = Field(default=None, ge=2000, le=2100)
    month: int | None = Field(default=None, ge=1, le=12)
    day: int | None = Field(default=None, ge=1, le=31)
    hour: int | None = Field(default=None, ge=0, le=24)

    @model_validator(mode="after")
    def _validate_date_chain(self) -> GetViewsInput:
        if self.month is not None and self.year is None:
            raise ValueError("year is required when month is passed")
        if self.day is not None and self.month is None:
            raise ValueError("month is required when day is passed")
        if self.hour is not None and self.day is None:
            raise ValueError("day is required when hour is passed")
        return self


class UploadImageInput(_ToolInput):
    file_path: str | None = None
    base64: str | None = Field(default=None, description="Base64 encoded file data.")
    content_type: UploadContentType | None = None
    filename: str | None = None

    @model_validator(mode="after")
    def _validate_source(self) -> UploadImageInput:
        if self.file_path:
            return self
        if self.base64 and self.content_type:
            return self
        raise ValueError("Either file_path or (base64 + content_type) must be provided")


class ListTemplatesInput(_ToolInput):
    pass


class CreateFromTemplateInput(_ToolInput):
    access_token: str = Field(min_length=1)
    template: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=256)
    data: dict[str, Any] = Field(default_factory=dict)
    author_name: str | None = Field(default=None, max_length=128)
    author_url: str | None = Field(default=None, max_length=512)
    return_content: bool = False


class ExportPageInput(_ToolInput):
    path: str = Field(min_length=1)
    format: ContentFormat = "markdown"


class BackupAccountInput(_ToolInput):
    access_token: str = Field(min_length=1)
    format: ContentFormat = "markdown"
    limit: int | None = Field(default=None, ge=1, le=200)
