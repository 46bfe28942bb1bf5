from __future__ import annotations

import re
from dataclasses import dataclass, field

from backend.app.services.content_nodes import (
    SELF_CLOSING_TAGS,
    ContentNode,
    NodeElement,
    build_element,
)

TOKEN_PATTERN = re.compile(
    r"<(?P<closing>/?)(?P<tag>[A-Za-z][\w-]*)(?P<attrs>[^>]*)>|(?P<text>[^<]+|<)"
)
ATTRIBUTE_PATTERN = re.compile(r"""([\w-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")


@dataclass
class _Frame:
    tag: str
    attrs: dict[str, str]
    children: list[ContentNode] = field(default_factory=list)

    def finalize(self) -> NodeElement:
        return build_element(self.tag, attrs=self.attrs, children=self.children)


def html_to_nodes(html: str) -> list[ContentNode]:
    """
    Convert an HTML fragment into Telegraph content nodes.

    The scan is a single regex pass over closing tags, opening tags and text
    runs, with open elements kept on an explicit frame stack. Any closing tag
    pops the innermost open element whatever its name, so mismatched markup
    reparents content instead of failing. Frames left open at the end of input
    are closed innermost-first.
    """
    root: list[ContentNode] = []
    stack: list[_Frame] = []

    for match in TOKEN_PATTERN.finditer(html):
        current = stack[-1].children if stack else root
        text = match.group("text")
        if text is not None:
            _append_text(current, text)
            continue

        tag = match.group("tag").lower()
        if match.group("closing"):
            if stack:
                _close_frame(stack, root)
            continue

        raw_attrs = match.group("attrs")
        attrs = parse_attributes(raw_attrs)
        if tag in SELF_CLOSING_TAGS or raw_attrs.rstrip().endswith("/"):
            current.append(build_element(tag, attrs=attrs))
        else:
            stack.append(_Frame(tag=tag, attrs=attrs))

    while stack:
        _close_frame(stack, root)

    return root


def parse_attributes(raw_attrs: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for match in ATTRIBUTE_PATTERN.finditer(raw_attrs):
        name, double_quoted, single_quoted = match.groups()
        attrs[name] = double_quoted if double_quoted is not None else single_quoted
    return attrs


def _close_frame(stack: list[_Frame], root: list[ContentNode]) -> None:
    frame = stack.pop()
    parent = stack[-1].children if stack else root
    parent.append(frame.finalize())


def _append_text(target: list[ContentNode], text: str) -> None:
    if not text:
        return
    if target and isinstance(target[-1], str):
        target[-1] = target[-1] + text
        return
    target.append(text)
