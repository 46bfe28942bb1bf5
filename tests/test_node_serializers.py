from __future__ import annotations

from backend.app.services.content_nodes import ContentNode
from backend.app.services.html_parser import html_to_nodes
from backend.app.services.markdown_converter import markdown_to_html
from backend.app.services.node_serializers import (
    nodes_to_html,
    nodes_to_markdown,
    serialize_nodes,
)


def test_markdown_keeps_text_order_and_bold() -> None:
    markdown = nodes_to_markdown(
        [{"tag": "p", "children": ["Hi "]}, {"tag": "b", "children": ["there"]}]
    )
    assert "Hi" in markdown
    assert "**there**" in markdown
    assert markdown.index("Hi") < markdown.index("**there**")


def test_html_renders_void_tags_and_attributes() -> None:
    nodes: list[ContentNode] = [
        {
            "tag": "p",
            "children": ["a ", {"tag": "a", "attrs": {"href": "u"}, "children": ["l"]}],
        },
        {"tag": "br"},
        {"tag": "img", "attrs": {"src": "x.png"}},
    ]
    assert nodes_to_html(nodes) == '<p>a <a href="u">l</a></p><br/><img src="x.png"/>'


def test_html_output_parses_back_to_the_same_tree() -> None:
    nodes = html_to_nodes('<h3>T</h3><p>x <i>y</i></p><figure><img src="a.png"/></figure>')
    assert html_to_nodes(nodes_to_html(nodes)) == nodes


def test_markdown_headings_and_paragraph_spacing() -> None:
    nodes: list[ContentNode] = [
        {"tag": "h3", "children": ["T"]},
        {"tag": "h4", "children": ["S"]},
        {"tag": "p", "children": ["a"]},
        {"tag": "p", "children": ["b"]},
    ]
    assert nodes_to_markdown(nodes) == "# T\n\n## S\n\na\n\nb"


def test_markdown_lists() -> None:
    unordered: list[ContentNode] = [
        {"tag": "ul", "children": [{"tag": "li", "children": ["a"]}, {"tag": "li", "children": ["b"]}]}
    ]
    ordered: list[ContentNode] = [
        {"tag": "ol", "children": [{"tag": "li", "children": ["a"]}, {"tag": "li", "children": ["b"]}]}
    ]
    assert nodes_to_markdown(unordered) == "- a\n- b"
    assert nodes_to_markdown(ordered) == "1. a\n2. b"


def test_markdown_code_blocks_are_fenced_without_inline_backticks() -> None:
    nodes: list[ContentNode] = [
        {"tag": "pre", "children": [{"tag": "code", "children": ["print('hi')"]}]},
        {"tag": "p", "children": ["run ", {"tag": "code", "children": ["make"]}]},
    ]
    assert nodes_to_markdown(nodes) == "```\nprint('hi')\n```\n\nrun `make`"


def test_markdown_media_and_misc_tags() -> None:
    assert nodes_to_markdown([{"tag": "img", "attrs": {"src": "c.png", "alt": "cat"}}]) == (
        "![cat](c.png)"
    )
    assert nodes_to_markdown([{"tag": "img", "attrs": {"src": "c.png"}}]) == "![image](c.png)"
    assert nodes_to_markdown([{"tag": "video", "attrs": {"src": "v.mp4"}}]) == "[video](v.mp4)"
    assert nodes_to_markdown([{"tag": "s", "children": ["gone"]}]) == "~~gone~~"
    assert nodes_to_markdown([{"tag": "u", "children": ["under"]}]) == "under"
    assert nodes_to_markdown([{"tag": "blockquote", "children": ["q"]}]) == "> q"
    assert nodes_to_markdown([{"tag": "hr"}]) == "---"
    assert nodes_to_markdown([{"tag": "span", "children": ["kept"]}]) == "kept"
    assert nodes_to_markdown([{"tag": "a", "attrs": {"href": "u"}, "children": ["l"]}]) == "[l](u)"


def test_markdown_export_of_converted_markdown_is_stable() -> None:
    source = "# Hi\n\n**bold** and *italic*\n\n- a\n- b"
    assert nodes_to_markdown(html_to_nodes(markdown_to_html(source))) == source


def test_serialize_nodes_defaults_to_markdown() -> None:
    nodes: list[ContentNode] = [{"tag": "b", "children": ["x"]}]
    assert serialize_nodes(nodes) == "**x**"
    assert serialize_nodes(nodes, "html") == "<b>x</b>"
