from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

FENCED_CODE_PATTERN = re.compile(r"```[^\n`]*\n?(.*?)\n?```", re.DOTALL)
INLINE_CODE_PATTERN = re.compile(r"`([^`\n]+)`")
HEADING_PATTERN = re.compile(r"^[ \t]*(#{1,4})[ \t]+(.+?)[ \t]*$", re.MULTILINE)
HORIZONTAL_RULE_PATTERN = re.compile(r"^[ \t]*-{3,}[ \t]*$", re.MULTILINE)
IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)\)")
LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
BOLD_PATTERNS = (
    re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*"),
    re.compile(r"__(?=\S)(.+?)(?<=\S)__"),
)
ITALIC_PATTERNS = (
    re.compile(r"(?<![\w*])\*(?![\s*])(.+?)(?<![\s*])\*(?![\w*])"),
    re.compile(r"(?<![\w_])_(?![\s_])(.+?)(?<![\s_])_(?![\w_])"),
)
BLOCKQUOTE_PATTERN = re.compile(r"^[ \t]*>[ \t]+(.*?)[ \t]*$", re.MULTILINE)
UNORDERED_ITEM_PATTERN = re.compile(r"^[ \t]*[-*][ \t]+(.+?)[ \t]*$")
ORDERED_ITEM_PATTERN = re.compile(r"^[ \t]*\d+\.[ \t]+(.+?)[ \t]*$")
PREFORMATTED_BLOCK_PATTERN = re.compile(r"(<pre>.*?</pre>)", re.DOTALL)
BLANK_LINE_PATTERN = re.compile(r"\n[ \t]*\n+")
BLOCK_ELEMENT_PATTERN = re.compile(
    r"^<(?:aside|blockquote|figure|h3|h4|hr|iframe|ol|p|pre|ul|video)\b.*>$",
    re.DOTALL,
)

_CODE_BLOCK_MARKER = "\x00CODEBLOCK{index}\x00"
_INLINE_CODE_MARKER = "\x00CODESPAN{index}\x00"
_URL_MARKER = "\x00URL{index}\x00"
_MARKER_PATTERN = re.compile(r"\x00(CODEBLOCK|CODESPAN|URL)(\d+)\x00")


@dataclass
class PlaceholderTable:
    code_blocks: list[str] = field(default_factory=list)
    inline_code: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)

    def stash_block(self, code: str) -> str:
        self.code_blocks.append(code)
        return _CODE_BLOCK_MARKER.format(index=len(self.code_blocks) - 1)

    def stash_inline(self, code: str) -> str:
        self.inline_code.append(code)
        return _INLINE_CODE_MARKER.format(index=len(self.inline_code) - 1)

    def stash_url(self, url: str) -> str:
        self.urls.append(url)
        return _URL_MARKER.format(index=len(self.urls) - 1)


def extract_code_blocks(text: str, table: PlaceholderTable) -> str:
    return FENCED_CODE_PATTERN.sub(
        lambda match: f"\n\n{table.stash_block(match.group(1))}\n\n",
        text,
    )


def extract_inline_code(text: str, table: PlaceholderTable) -> str:
    return INLINE_CODE_PATTERN.sub(lambda match: table.stash_inline(match.group(1)), text)


def convert_headings(text: str) -> str:
    # Telegraph only renders h3 and h4: "#" maps to h3, everything deeper to h4.
    def _replace(match: re.Match[str]) -> str:
        tag = "h3" if len(match.group(1)) == 1 else "h4"
        return f"\n\n<{tag}>{match.group(2)}</{tag}>\n\n"

    return HEADING_PATTERN.sub(_replace, text)


def convert_horizontal_rules(text: str) -> str:
    return HORIZONTAL_RULE_PATTERN.sub("\n\n<hr/>\n\n", text)


def convert_images(text: str, table: PlaceholderTable) -> str:
    # URLs go into the table so the emphasis rules never see them.
    def _replace(match: re.Match[str]) -> str:
        alt, url = match.group(1), table.stash_url(match.group(2))
        caption = f"<figcaption>{alt}</figcaption>" if alt else ""
        return f'<figure><img src="{url}"/>{caption}</figure>'

    return IMAGE_PATTERN.sub(_replace, text)


def convert_links(text: str, table: PlaceholderTable) -> str:
    return LINK_PATTERN.sub(
        lambda match: f'<a href="{table.stash_url(match.group(2))}">{match.group(1)}</a>',
        text,
    )


def convert_bold(text: str) -> str:
    for pattern in BOLD_PATTERNS:
        text = pattern.sub(r"<b>\1</b>", text)
    return text


def convert_italic(text: str) -> str:
    for pattern in ITALIC_PATTERNS:
        text = pattern.sub(r"<i>\1</i>", text)
    return text


def convert_blockquotes(text: str) -> str:
    return BLOCKQUOTE_PATTERN.sub(r"\n\n<blockquote>\1</blockquote>\n\n", text)


def convert_unordered_lists(text: str) -> str:
    return _group_list_items(text, UNORDERED_ITEM_PATTERN, "ul")


def convert_ordered_lists(text: str) -> str:
    return _group_list_items(text, ORDERED_ITEM_PATTERN, "ol")


def restore_placeholders(text: str, table: PlaceholderTable) -> str:
    def _replace(match: re.Match[str]) -> str:
        kind, index = match.group(1), int(match.group(2))
        if kind == "CODEBLOCK":
            return f"<pre>{table.code_blocks[index]}</pre>"
        if kind == "CODESPAN":
            return f"<code>{table.inline_code[index]}</code>"
        return table.urls[index]

    return _MARKER_PATTERN.sub(_replace, text)


def wrap_paragraphs(text: str) -> str:
    blocks: list[str] = []
    for segment in PREFORMATTED_BLOCK_PATTERN.split(text):
        if PREFORMATTED_BLOCK_PATTERN.fullmatch(segment):
            blocks.append(segment)
            continue
        for raw_block in BLANK_LINE_PATTERN.split(segment):
            block = raw_block.strip()
            if not block:
                continue
            if BLOCK_ELEMENT_PATTERN.match(block):
                blocks.append(block)
            else:
                blocks.append(f"<p>{block}</p>")
    return "".join(blocks)


def _group_list_items(text: str, item_pattern: re.Pattern[str], list_tag: str) -> str:
    output: list[str] = []
    items: list[str] = []

    def _flush() -> None:
        if not items:
            return
        rendered = "".join(f"<li>{item}</li>" for item in items)
        output.append(f"\n<{list_tag}>{rendered}</{list_tag}>\n")
        items.clear()

    for line in text.split("\n"):
        match = item_pattern.match(line)
        if match is not None:
            items.append(match.group(1))
            continue
        _flush()
        output.append(line)
    _flush()
    return "\n".join(output)


TextStage = Callable[[str], str]


def _text_stages(table: PlaceholderTable) -> tuple[TextStage, ...]:
    return (
        convert_headings,
        convert_horizontal_rules,
        partial(convert_images, table=table),
        partial(convert_links, table=table),
        convert_bold,
        convert_italic,
        convert_blockquotes,
        convert_unordered_lists,
        convert_ordered_lists,
    )


def markdown_to_html(markdown: str) -> str:
    """
    Rewrite a Markdown subset into the HTML subset Telegraph accepts.

    Stages run in a fixed order because each one sees the output of the
    previous ones: code is lifted out first so no later rule touches it,
    images run before links, link and image URLs are parked in the same
    placeholder table until emphasis is done, and paragraph wrapping runs
    last so it can skip blocks that are already elements.
    """
    table = PlaceholderTable()
    text = markdown.replace("\r\n", "\n").replace("\r", "\n")
    text = extract_code_blocks(text, table)
    text = extract_inline_code(text, table)
    for stage in _text_stages(table):
        text = stage(text)
    text = restore_placeholders(text, table)
    return wrap_paragraphs(text)
