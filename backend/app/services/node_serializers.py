from __future__ import annotations

import re
from collections.abc import Callable

from backend.app.services.content_nodes import (
    SELF_CLOSING_TAGS,
    ContentFormat,
    ContentNode,
    NodeElement,
    is_element,
)

_EXCESS_NEWLINES_PATTERN = re.compile(r"\n{3,}")

_MarkdownRenderer = Callable[[NodeElement, str], str]


def nodes_to_html(nodes: list[ContentNode]) -> str:
    return "".join(_node_to_html(node) for node in nodes)


def nodes_to_markdown(nodes: list[ContentNode]) -> str:
    rendered = _render_markdown(nodes)
    return _EXCESS_NEWLINES_PATTERN.sub("\n\n", rendered).strip()


def serialize_nodes(nodes: list[ContentNode], content_format: ContentFormat = "markdown") -> str:
    if content_format == "html":
        return nodes_to_html(nodes)
    return nodes_to_markdown(nodes)


def _node_to_html(node: ContentNode) -> str:
    if isinstance(node, str):
        return node
    if not is_element(node):
        return ""
    tag = node["tag"]
    attrs = " ".join(f'{name}="{value}"' for name, value in node.get("attrs", {}).items())
    opening = f"{tag} {attrs}" if attrs else tag
    if tag in SELF_CLOSING_TAGS:
        return f"<{opening}/>"
    children = nodes_to_html(node.get("children", []))
    return f"<{opening}>{children}</{tag}>"


def _render_markdown(nodes: list[ContentNode]) -> str:
    return "".join(_node_to_markdown(node) for node in nodes)


def _node_to_markdown(node: ContentNode) -> str:
    if isinstance(node, str):
        return node
    if not is_element(node):
        return ""
    tag = node["tag"]
    if tag == "ol":
        return _ordered_list_to_markdown(node)
    if tag == "pre":
        return f"\n```\n{_plain_text(node.get('children', []))}\n```\n"
    children = _render_markdown(node.get("children", []))
    renderer = _MARKDOWN_RENDERERS.get(tag)
    if renderer is None:
        return children
    return renderer(node, children)


def _ordered_list_to_markdown(node: NodeElement) -> str:
    lines: list[str] = []
    position = 0
    for child in node.get("children", []):
        if isinstance(child, str):
            if child.strip():
                lines.append(child.strip())
            continue
        if child.get("tag") != "li":
            lines.append(_node_to_markdown(child).strip())
            continue
        position += 1
        lines.append(f"{position}. {_render_markdown(child.get('children', [])).strip()}")
    return "\n" + "".join(f"{line}\n" for line in lines)


def _plain_text(nodes: list[ContentNode]) -> str:
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, str):
            parts.append(node)
        elif is_element(node):
            parts.append("\n" if node["tag"] == "br" else _plain_text(node.get("children", [])))
    return "".join(parts)


def _attr(node: NodeElement, name: str) -> str:
    return node.get("attrs", {}).get(name, "")


def _image_to_markdown(node: NodeElement, _children: str) -> str:
    alt = _attr(node, "alt") or "image"
    return f"![{alt}]({_attr(node, 'src')})"


def _embed_to_markdown(node: NodeElement, _children: str) -> str:
    src = _attr(node, "src")
    if not src:
        return ""
    return f"\n[{node['tag']}]({src})\n"


_MARKDOWN_RENDERERS: dict[str, _MarkdownRenderer] = {
    "h3": lambda _node, children: f"\n# {children}\n",
    "h4": lambda _node, children: f"\n## {children}\n",
    "p": lambda _node, children: f"\n{children}\n",
    "b": lambda _node, children: f"**{children}**",
    "strong": lambda _node, children: f"**{children}**",
    "i": lambda _node, children: f"*{children}*",
    "em": lambda _node, children: f"*{children}*",
    "a": lambda node, children: f"[{children}]({_attr(node, 'href')})",
    "img": _image_to_markdown,
    "figure": lambda _node, children: f"\n{children}\n",
    "figcaption": lambda _node, children: f"\n*{children}*\n",
    "ul": lambda _node, children: f"\n{children}",
    "li": lambda _node, children: f"- {children}\n",
    "blockquote": lambda _node, children: f"\n> {children}\n",
    "code": lambda _node, children: f"`{children}`",
    "br": lambda _node, _children: "\n",
    "hr": lambda _node, _children: "\n---\n",
    "s": lambda _node, children: f"~~{children}~~",
    "u": lambda _node, children: children,
    "aside": lambda _node, children: f"\n*{children}*\n",
    "video": _embed_to_markdown,
    "iframe": _embed_to_markdown,
}
