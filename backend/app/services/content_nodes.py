from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, NotRequired, TypedDict

ContentFormat = Literal["html", "markdown"]

ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "a",
        "aside",
        "b",
        "blockquote",
        "br",
        "code",
        "em",
        "figcaption",
        "figure",
        "h3",
        "h4",
        "hr",
        "i",
        "iframe",
        "img",
        "li",
        "ol",
        "p",
        "pre",
        "s",
        "strong",
        "u",
        "ul",
        "video",
    }
)
SELF_CLOSING_TAGS: frozenset[str] = frozenset({"br", "hr", "img"})


class NodeElement(TypedDict):
    tag: str
    attrs: NotRequired[dict[str, str]]
    children: NotRequired[list[ContentNode]]


ContentNode = str | NodeElement


@dataclass(frozen=True)
class RawTree:
    nodes: list[ContentNode]


@dataclass(frozen=True)
class MarkdownText:
    text: str


@dataclass(frozen=True)
class HtmlText:
    text: str


ContentInput = RawTree | MarkdownText | HtmlText


def build_element(
    tag: str,
    *,
    attrs: dict[str, str] | None = None,
    children: list[ContentNode] | None = None,
) -> NodeElement:
    element: NodeElement = {"tag": tag}
    if attrs:
        element["attrs"] = attrs
    if children:
        element["children"] = children
    return element


def is_element(node: object) -> bool:
    return isinstance(node, dict) and isinstance(node.get("tag"), str)


def collect_tags(nodes: list[ContentNode]) -> set[str]:
    tags: set[str] = set()
    for node in nodes:
        if isinstance(node, str) or not is_element(node):
            continue
        tags.add(node["tag"])
        tags.update(collect_tags(node.get("children", [])))
    return tags


def disallowed_tags(nodes: list[ContentNode]) -> list[str]:
    return sorted(tag for tag in collect_tags(nodes) if tag not in ALLOWED_TAGS)
