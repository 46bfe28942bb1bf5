from __future__ import annotations

from copy import deepcopy
from typing import Any

from backend.app.services.telegraph_client import TelegraphApiError, TelegraphClient


class FakeTelegraphClient(TelegraphClient):
    """In-memory Telegraph: answers API methods from a dict of stored pages."""

    def __init__(self) -> None:
        super().__init__(
            api_base_url="https://api.telegra.ph",
            upload_url="https://telegra.ph/upload",
            file_base_url="https://telegra.ph",
            http_timeout_seconds=1.0,
            user_agent="telegraph-tools-tests",
        )
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.uploads: list[tuple[bytes, str, str]] = []
        self.pages: dict[str, dict[str, Any]] = {}
        self.fail_with: TelegraphApiError | None = None

    def add_page(self, path: str, title: str, content: list[Any] | None) -> None:
        page: dict[str, Any] = {
            "path": path,
            "url": f"https://telegra.ph/{path}",
            "title": title,
            "description": "",
            "views": 3,
            "can_edit": True,
        }
        if content is not None:
            page["content"] = content
        self.pages[path] = page

    def call(self, method: str, params: dict[str, Any]) -> dict[str, object]:
        self.calls.append((method, dict(params)))
        if self.fail_with is not None:
            raise self.fail_with
        handler = getattr(self, f"_answer_{method}")
        return handler(params)

    def upload_file(self, data: bytes, *, filename: str, content_type: str) -> str:
        self.uploads.append((data, filename, content_type))
        if self.fail_with is not None:
            raise self.fail_with
        return f"https://telegra.ph/file/{filename}"

    def _answer_createAccount(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        return {
            "short_name": params["short_name"],
            "author_name": params.get("author_name") or "",
            "author_url": params.get("author_url") or "",
            "access_token": "token-123",
            "auth_url": "https://edit.telegra.ph/auth/abc",
            "page_count": 0,
        }

    def _answer_editAccountInfo(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        return {
            "short_name": params.get("short_name") or "tester",
            "author_name": params.get("author_name") or "",
            "author_url": params.get("author_url") or "",
        }

    def _answer_getAccountInfo(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        _ = params
        return {"short_name": "tester", "author_name": "Tess", "page_count": len(self.pages)}

    def _answer_revokeAccessToken(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        _ = params
        return {"access_token": "token-456", "auth_url": "https://edit.telegra.ph/auth/def"}

    def _answer_createPage(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        path = f"{params['title'].replace(' ', '-')}-10-19"
        self.add_page(path, params["title"], deepcopy(params["content"]))
        return self._page_answer(path, return_content=params.get("return_content", False))

    def _answer_editPage(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        path = params["path"]
        if path not in self.pages:
            raise TelegraphApiError("PAGE_NOT_FOUND", status_code=None, retryable=False)
        self.add_page(path, params["title"], deepcopy(params["content"]))
        return self._page_answer(path, return_content=params.get("return_content", False))

    def _answer_getPage(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        path = params["path"]
        if path not in self.pages:
            raise TelegraphApiError("PAGE_NOT_FOUND", status_code=None, retryable=False)
        return self._page_answer(path, return_content=params.get("return_content", False))

    def _answer_getPageList(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        offset = params.get("offset", 0)
        limit = params.get("limit", 50)
        listed = [
            self._page_answer(path, return_content=False)
            for path in list(self.pages)[offset : offset + limit]
        ]
        return {"total_count": len(self.pages), "pages": listed}

    def _answer_getViews(self, params: dict[str, Any]) -> dict[str, object]:  # noqa: N802
        _ = params
        return {"views": 42}

    def _page_answer(self, path: str, *, return_content: bool) -> dict[str, object]:
        page = deepcopy(self.pages[path])
        if not return_content:
            page.pop("content", None)
        return page
