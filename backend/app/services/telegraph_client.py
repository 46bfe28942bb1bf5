from __future__ import annotations

import json
import logging
import time
from pathlib import PurePath
from typing import Any, TypeVar, cast
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from backend.app.models.telegraph_contracts import Account, Page, PageList, PageViews
from backend.app.services.content_nodes import ContentNode
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("telegraph_tools.telegraph")

DEFAULT_UPLOAD_CONTENT_TYPE = "application/octet-stream"
UPLOAD_CONTENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".mp4": "video/mp4",
}
_FLOOD_WAIT_PREFIX = "FLOOD_WAIT"

_ResultModel = TypeVar("_ResultModel", bound=BaseModel)


class TelegraphApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None, retryable: bool) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


def guess_upload_content_type(filename: str) -> str:
    return UPLOAD_CONTENT_TYPES.get(PurePath(filename).suffix.lower(), DEFAULT_UPLOAD_CONTENT_TYPE)


class TelegraphClient:
    def __init__(
        self,
        *,
        api_base_url: str,
        upload_url: str,
        file_base_url: str,
        http_timeout_seconds: float,
        user_agent: str,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._upload_url = upload_url
        self._file_base_url = file_base_url.rstrip("/")
        self._http_timeout_seconds = http_timeout_seconds
        self._user_agent = user_agent
        self._telemetry = telemetry or TelemetryClient.disabled()

    def create_account(
        self,
        *,
        short_name: str,
        author_name: str | None = None,
        author_url: str | None = None,
    ) -> Account:
        result = self.call(
            "createAccount",
            {"short_name": short_name, "author_name": author_name, "author_url": author_url},
        )
        return _parse_result(Account, result, method="createAccount")

    def edit_account_info(
        self,
        *,
        access_token: str,
        short_name: str | None = None,
        author_name: str | None = None,
        author_url: str | None = None,
    ) -> Account:
        result = self.call(
            "editAccountInfo",
            {
                "access_token": access_token,
                "short_name": short_name,
                "author_name": author_name,
                "author_url": author_url,
            },
        )
        return _parse_result(Account, result, method="editAccountInfo")

    def get_account_info(self, *, access_token: str, fields: list[str] | None = None) -> Account:
        result = self.call("getAccountInfo", {"access_token": access_token, "fields": fields})
        return _parse_result(Account, result, method="getAccountInfo")

    def revoke_access_token(self, *, access_token: str) -> Account:
        result = self.call("revokeAccessToken", {"access_token": access_token})
        return _parse_result(Account, result, method="revokeAccessToken")

    def create_page(
        self,
        *,
        access_token: str,
        title: str,
        content: list[ContentNode],
        author_name: str | None = None,
        author_url: str | None = None,
        return_content: bool = False,
    ) -> Page:
        result = self.call(
            "createPage",
            {
                "access_token": access_token,
                "title": title,
                "content": content,
                "author_name": author_name,
                "author_url": author_url,
                "return_content": return_content,
            },
        )
        return _parse_result(Page, result, method="createPage")

    def edit_page(
        self,
        *,
        access_token: str,
        path: str,
        title: str,
        content: list[ContentNode],
        author_name: str | None = None,
        author_url: str | None = None,
        return_content: bool = False,
    ) -> Page:
        result = self.call(
            "editPage",
            {
                "access_token": access_token,
                "path": path,
                "title": title,
                "content": content,
                "author_name": author_name,
                "author_url": author_url,
                "return_content": return_content,
            },
        )
        return _parse_result(Page, result, method="editPage")

    def get_page(self, *, path: str, return_content: bool = False) -> Page:
        result = self.call("getPage", {"path": path, "return_content": return_content})
        return _parse_result(Page, result, method="getPage")

    def get_page_list(self, *, access_token: str, offset: int = 0, limit: int = 50) -> PageList:
        result = self.call(
            "getPageList",
            {"access_token": access_token, "offset": offset, "limit": limit},
        )
        return _parse_result(PageList, result, method="getPageList")

    def get_views(
        self,
        *,
        path: str,
        year: int | None = None,
        month: int | None = None,
        day: int | None = None,
        hour: int | None = None,
    ) -> PageViews:
        result = self.call(
            "getViews",
            {"path": path, "year": year, "month": month, "day": day, "hour": hour},
        )
        return _parse_result(PageViews, result, method="getViews")

    def upload_file(self, data: bytes, *, filename: str, content_type: str) -> str:
        """Upload raw bytes and return the public URL Telegraph serves them from."""
        body, multipart_type = _encode_multipart(
            field_name="file",
            filename=filename,
            content_type=content_type,
            data=data,
        )
        request = Request(
            url=self._upload_url,
            data=body,
            headers={
                "Accept": "application/json",
                "Content-Type": multipart_type,
                "User-Agent": self._user_agent,
            },
            method="POST",
        )
        raw_body = self._send(request, api_method="upload")
        src = _extract_upload_src(raw_body)
        return f"{self._file_base_url}{src}"

    def call(self, method: str, params: dict[str, Any]) -> dict[str, object]:
        form = {
            key: _encode_form_value(value) for key, value in params.items() if value is not None
        }
        request = Request(
            url=f"{self._api_base_url}/{method}",
            data=urlencode(form).encode("utf-8"),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/x-www-form-urlencoded",
                "User-Agent": self._user_agent,
            },
            method="POST",
        )
        raw_body = self._send(request, api_method=method)

        answer = _decode_json_object(raw_body)
        if answer.get("ok") is not True:
            error = _to_optional_text(answer.get("error")) or "Unknown Telegraph API error"
            LOGGER.warning("telegraph api rejected call method=%s error=%s", method, error)
            raise TelegraphApiError(
                error,
                status_code=None,
                retryable=error.startswith(_FLOOD_WAIT_PREFIX),
            )
        result = answer.get("result")
        if not isinstance(result, dict):
            raise TelegraphApiError(
                f"Telegraph {method} answer missing result object.",
                status_code=None,
                retryable=False,
            )
        return cast(dict[str, object], result)

    def _send(self, request: Request, *, api_method: str) -> str:
        started = time.perf_counter()
        outcome = "ok"
        try:
            with urlopen(request, timeout=self._http_timeout_seconds) as response:
                return response.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            outcome = "http_error"
            response_body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            message = (
                _to_optional_text(_decode_json_object(response_body).get("error"))
                or f"HTTP error: {exc.code} {exc.reason}"
            )
            LOGGER.warning(
                "telegraph http error method=%s status=%s message=%s",
                api_method,
                exc.code,
                message,
            )
            raise TelegraphApiError(
                message,
                status_code=exc.code,
                retryable=(exc.code >= 500 or exc.code in {408, 429}),
            ) from exc
        except (URLError, TimeoutError) as exc:
            outcome = "network_error"
            reason = exc.reason if isinstance(exc, URLError) else exc
            LOGGER.warning("telegraph request failed method=%s reason=%s", api_method, reason)
            raise TelegraphApiError(
                f"Telegraph request failed: {reason}",
                status_code=None,
                retryable=True,
            ) from exc
        finally:
            self._telemetry.emit(
                "telegraph.api.request",
                api_method=api_method,
                outcome=outcome,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )


def _encode_form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | dict):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _encode_multipart(
    *,
    field_name: str,
    filename: str,
    content_type: str,
    data: bytes,
) -> tuple[bytes, str]:
    boundary = f"telegraph-tools-{uuid4().hex}"
    safe_filename = filename.replace('"', "").replace("\r", "").replace("\n", "") or "upload"
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field_name}"; filename="{safe_filename}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode()
    return head + data + tail, f"multipart/form-data; boundary={boundary}"


def _extract_upload_src(raw_body: str) -> str:
    try:
        parsed: Any = json.loads(raw_body)
    except json.JSONDecodeError as exc:
        raise TelegraphApiError(
            "Upload failed: undecodable answer",
            status_code=None,
            retryable=False,
        ) from exc

    first: Any = parsed[0] if isinstance(parsed, list) and parsed else parsed
    if isinstance(first, dict):
        entry = cast(dict[str, object], first)
        error = _to_optional_text(entry.get("error"))
        if error is not None:
            raise TelegraphApiError(f"Upload error: {error}", status_code=None, retryable=False)
        src = _to_optional_text(entry.get("src"))
        if src is not None:
            return src
    raise TelegraphApiError("Upload failed: No source returned", status_code=None, retryable=False)


def _parse_result(
    model: type[_ResultModel],
    result: dict[str, object],
    *,
    method: str,
) -> _ResultModel:
    try:
        return model.model_validate(result)
    except ValidationError as exc:
        raise TelegraphApiError(
            f"Telegraph {method} answer has an unexpected shape.",
            status_code=None,
            retryable=False,
        ) from exc


def _decode_json_object(raw_body: str) -> dict[str, object]:
    if not raw_body.strip():
        return {}
    try:
        parsed = json.loads(raw_body)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, dict):
        return {
            key: value
            for key, value in cast(dict[object, object], parsed).items()
            if isinstance(key, str)
        }
    return {}


def _to_optional_text(value: object) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return None
