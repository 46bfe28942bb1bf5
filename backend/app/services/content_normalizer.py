from __future__ import annotations

import json
from typing import Any, cast

from backend.app.services.content_nodes import (
    ContentFormat,
    ContentInput,
    ContentNode,
    HtmlText,
    MarkdownText,
    RawTree,
)
from backend.app.services.html_parser import html_to_nodes
from backend.app.services.markdown_converter import markdown_to_html


def classify_content(
    content: str | list[ContentNode],
    content_format: ContentFormat = "html",
) -> ContentInput:
    """
    Decide once which representation a content value carries.

    Lists are taken as ready-made trees. Strings that decode to a JSON array are
    trees too, whatever format was declared, so callers that serialize their
    node list into the string field keep working.
    """
    if isinstance(content, list):
        return RawTree(nodes=content)

    decoded = _decode_json_array(content)
    if decoded is not None:
        return RawTree(nodes=decoded)

    if content_format == "markdown":
        return MarkdownText(text=content)
    return HtmlText(text=content)


def resolve_content(source: ContentInput) -> list[ContentNode]:
    if isinstance(source, RawTree):
        return source.nodes
    if isinstance(source, MarkdownText):
        return html_to_nodes(markdown_to_html(source.text))
    return html_to_nodes(source.text)


def normalize_content(
    content: str | list[ContentNode],
    content_format: ContentFormat = "html",
) -> list[ContentNode]:
    return resolve_content(classify_content(content, content_format))


def _decode_json_array(raw: str) -> list[ContentNode] | None:
    stripped = raw.strip()
    if not stripped.startswith("["):
        return None
    try:
        parsed: Any = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, list):
        return cast(list[ContentNode], parsed)
    return None
