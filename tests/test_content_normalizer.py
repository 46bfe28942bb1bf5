from __future__ import annotations

from backend.app.services.content_nodes import (
    ContentNode,
    HtmlText,
    MarkdownText,
    RawTree,
    disallowed_tags,
)
from backend.app.services.content_normalizer import classify_content, normalize_content


def test_node_lists_pass_through_untouched() -> None:
    nodes: list[ContentNode] = [{"tag": "p", "children": ["x"]}]
    assert normalize_content(nodes, "markdown") is nodes


def test_json_array_string_wins_over_declared_format() -> None:
    encoded = '[{"tag": "p", "children": ["x"]}]'
    assert classify_content(encoded, "markdown") == RawTree(
        nodes=[{"tag": "p", "children": ["x"]}]
    )
    assert normalize_content(encoded, "html") == [{"tag": "p", "children": ["x"]}]


def test_strings_follow_the_declared_format() -> None:
    assert classify_content("# Hi", "markdown") == MarkdownText(text="# Hi")
    assert classify_content("<p>Hi</p>") == HtmlText(text="<p>Hi</p>")
    assert normalize_content("# Hi", "markdown") == [{"tag": "h3", "children": ["Hi"]}]
    assert normalize_content("# Hi") == ["# Hi"]


def test_bracketed_markdown_is_not_mistaken_for_json() -> None:
    assert classify_content("[link](https://x.test)", "markdown") == MarkdownText(
        text="[link](https://x.test)"
    )
    assert normalize_content("[link](https://x.test)", "markdown") == [
        {"tag": "p", "children": [{"tag": "a", "attrs": {"href": "https://x.test"}, "children": ["link"]}]}
    ]


def test_json_that_is_not_an_array_is_treated_as_text() -> None:
    assert normalize_content('{"a": 1}') == ['{"a": 1}']


def test_garbage_never_raises() -> None:
    assert normalize_content("<<<>>>") == ["<<<>>>"]
    assert normalize_content("", "markdown") == []


def test_disallowed_tags_are_reported_from_any_depth() -> None:
    nodes = normalize_content("<p>ok <span>no</span></p><div><b>x</b></div>")
    assert disallowed_tags(nodes) == ["div", "span"]
