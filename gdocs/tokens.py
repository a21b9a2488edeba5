"""
Markdown Token Source

Adapts markdown-it-py's flat token stream into the block tokens consumed by
`gdocs.emitter.BlockEmitter`. Each heading, paragraph, list item and table cell
carries two forms of its text:

- `raw`: the same text with markdown delimiters re-inserted (``Hello **world**!``)
- `text`: the rendered "clean" text with delimiters removed (``Hello world!``)

The inline style resolver maps spans found in `raw` onto `text`, so both forms
must differ only by delimiter characters. Both are rendered from the same
inline children, so escapes, entities and autolinks cannot shift one against
the other.

Blank lines between top-level blocks are reported as `SpaceToken`s carrying the
number of blank lines, which feed the emitter's spacing state machine.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Union

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.tasklists import tasklists_plugin

if TYPE_CHECKING:
    from markdown_it.token import Token as MdToken

logger = logging.getLogger(__name__)

# Task list checkbox characters (Unicode ballot box symbols)
CHECKBOX_UNCHECKED = "☐"  # U+2610 BALLOT BOX
CHECKBOX_CHECKED = "☑"  # U+2611 BALLOT BOX WITH CHECK

# Characters the inline style resolver treats as markup; literal occurrences are masked in `raw`
_LITERAL_MASK = str.maketrans(dict.fromkeys("*_`~[]", "\u001a"))

_EMPHASIS_TOKEN_TYPES = ("em_open", "em_close", "strong_open", "strong_close", "s_open", "s_close")

_LIST_NODE_TYPES = ("bullet_list", "ordered_list")
_CODE_NODE_TYPES = ("fence", "code_block")


class TokenType(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    BLOCKQUOTE = "blockquote"
    CODE = "code"
    HR = "hr"
    TABLE = "table"
    SPACE = "space"


@dataclass(frozen=True)
class HeadingToken:
    text: str
    raw: str
    depth: int

    type: ClassVar[TokenType] = TokenType.HEADING


@dataclass(frozen=True)
class ParagraphToken:
    text: str
    raw: str

    type: ClassVar[TokenType] = TokenType.PARAGRAPH


@dataclass(frozen=True)
class ListItem:
    """One list entry. Nested sub-list entries follow their parent with `level + 1`."""

    text: str
    raw: str
    level: int = 0
    ordered: bool = False


@dataclass(frozen=True)
class ListToken:
    items: tuple[ListItem, ...]
    ordered: bool = False

    type: ClassVar[TokenType] = TokenType.LIST


@dataclass(frozen=True)
class BlockquoteToken:
    tokens: tuple[Token, ...]

    type: ClassVar[TokenType] = TokenType.BLOCKQUOTE


@dataclass(frozen=True)
class CodeToken:
    text: str
    lang: str = ""

    type: ClassVar[TokenType] = TokenType.CODE


@dataclass(frozen=True)
class HrToken:
    type: ClassVar[TokenType] = TokenType.HR


@dataclass(frozen=True)
class TableCell:
    text: str
    raw: str


@dataclass(frozen=True)
class TableToken:
    header: tuple[TableCell, ...]
    rows: tuple[tuple[TableCell, ...], ...]

    type: ClassVar[TokenType] = TokenType.TABLE


@dataclass(frozen=True)
class SpaceToken:
    lines: int = 1

    type: ClassVar[TokenType] = TokenType.SPACE


Token = Union[
    HeadingToken,
    ParagraphToken,
    ListToken,
    BlockquoteToken,
    CodeToken,
    HrToken,
    TableToken,
    SpaceToken,
]


def _checkbox_char(token: MdToken) -> str | None:
    """Return the ballot box for a tasklists checkbox html_inline token."""
    if token.type != "html_inline" or 'class="task-list-item-checkbox"' not in token.content:
        return None
    return CHECKBOX_CHECKED if 'checked="checked"' in token.content else CHECKBOX_UNCHECKED


def _is_data_image(token: MdToken) -> bool:
    return str(token.attrGet("src") or "").lower().startswith("data:image/")


def _literal(text: str) -> str:
    return text.translate(_LITERAL_MASK)


def _link_target(href: str) -> str:
    # The resolver reads a link target up to the first ")" or whitespace
    return re.sub(r"\s", "%20", href).replace(")", "%29")


def render_clean_text(children: list[MdToken] | None) -> str:
    """
    Render inline children to clean text.

    Emphasis, strikethrough and link markers contribute nothing; their inner text
    tokens carry the content. Embedded data-URI images render as their `src` so
    the image extractor can find them at the same spot in raw and clean text.
    """
    parts: list[str] = []
    for child in children or []:
        if child.type in ("text", "code_inline"):
            parts.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            parts.append("\n")
        elif child.type == "image":
            if _is_data_image(child):
                parts.append(str(child.attrGet("src")))
            else:
                parts.append(render_clean_text(child.children))
        elif child.type == "html_inline":
            parts.append(_checkbox_char(child) or child.content)
    return "".join(parts)


def render_raw_text(children: list[MdToken] | None) -> str:
    """
    Render inline children to raw text.

    Walks the same tokens as `render_clean_text` and emits the same characters,
    adding delimiters around emphasis, strikethrough, inline code and links.
    Literal delimiter characters in content (escaped ``\\*``, code span bodies,
    entities, inline HTML) are masked so they never pair up as markup.
    """
    parts: list[str] = []
    hrefs: list[str] = []
    for child in children or []:
        if child.type == "text":
            parts.append(_literal(child.content))
        elif child.type == "code_inline":
            parts.append(f"`{_literal(child.content)}`")
        elif child.type in ("softbreak", "hardbreak"):
            parts.append("\n")
        elif child.type in _EMPHASIS_TOKEN_TYPES:
            parts.append(child.markup)
        elif child.type == "link_open":
            hrefs.append(str(child.attrGet("href") or ""))
            parts.append("[")
        elif child.type == "link_close":
            parts.append(f"]({_link_target(hrefs.pop() if hrefs else '')})")
        elif child.type == "image":
            if _is_data_image(child):
                parts.append(f"![{_literal(child.content)}]({child.attrGet('src')})")
            else:
                parts.append(_literal(render_clean_text(child.children)))
        elif child.type == "html_inline":
            parts.append(_literal(_checkbox_char(child) or child.content))
    return "".join(parts)


class MarkdownTokenizer:
    """
    Parses markdown into block tokens.

    Uses markdown-it-py's CommonMark preset with GFM-style additions:
    - `breaks`: a single newline is a line break
    - table: GFM tables
    - strikethrough: ~~text~~ syntax
    - tasklists: [ ] and [x] checkboxes
    """

    def __init__(self) -> None:
        self.md = (
            MarkdownIt("commonmark", {"breaks": True}).enable("table").enable("strikethrough").use(tasklists_plugin)
        )

    def tokenize(self, markdown_text: str) -> list[Token]:
        """
        Tokenize markdown text into block tokens.

        Args:
            markdown_text: The Markdown string to parse.

        Returns:
            Ordered block tokens, with `SpaceToken`s for blank lines between top-level blocks.
        """
        root = SyntaxTreeNode(self.md.parse(markdown_text))
        return self._build_blocks(root.children, top_level=True)

    def _build_blocks(self, nodes: list[SyntaxTreeNode], top_level: bool) -> list[Token]:
        blocks: list[Token] = []
        previous_end = 0
        for node in nodes:
            if top_level and node.map:
                gap = node.map[0] - previous_end
                if gap > 0:
                    blocks.append(SpaceToken(lines=gap))
                previous_end = node.map[1]

            block = self._build_block(node)
            if block is not None:
                blocks.append(block)
        return blocks

    def _build_block(self, node: SyntaxTreeNode) -> Token | None:
        logger.debug(f"Block node: type={node.type}, tag={node.tag}, map={node.map}")

        if node.type == "heading":
            inline = node.children[0].token
            return HeadingToken(
                text=render_clean_text(inline.children),
                raw=render_raw_text(inline.children),
                depth=int(node.tag[1:]),
            )
        elif node.type == "paragraph":
            inline = node.children[0].token
            return ParagraphToken(text=render_clean_text(inline.children), raw=render_raw_text(inline.children))
        elif node.type in _LIST_NODE_TYPES:
            items: list[ListItem] = []
            self._collect_list_items(node, 0, items)
            return ListToken(items=tuple(items), ordered=node.type == "ordered_list")
        elif node.type == "blockquote":
            return BlockquoteToken(tokens=tuple(self._build_blocks(node.children, top_level=False)))
        elif node.type in _CODE_NODE_TYPES:
            return CodeToken(text=node.content.rstrip("\n"), lang=(node.info or "").strip())
        elif node.type == "hr":
            return HrToken()
        elif node.type == "table":
            return self._build_table(node)
        elif node.type == "html_block":
            # Raw HTML blocks are kept as literal text
            content = node.content.strip()
            return ParagraphToken(text=content, raw=content)

        logger.debug(f"Skipping unsupported block node: {node.type}")
        return None

    def _collect_list_items(self, list_node: SyntaxTreeNode, level: int, items: list[ListItem]) -> None:
        """Flatten a (possibly nested) list into items tagged with their nesting level."""
        ordered = list_node.type == "ordered_list"
        for item_node in list_node.children:
            texts: list[str] = []
            raws: list[str] = []
            nested: list[SyntaxTreeNode] = []
            for child in item_node.children:
                if child.type == "paragraph":
                    inline = child.children[0].token
                    texts.append(render_clean_text(inline.children))
                    raws.append(render_raw_text(inline.children))
                elif child.type in _LIST_NODE_TYPES:
                    nested.append(child)
                elif child.type in _CODE_NODE_TYPES:
                    code = child.content.rstrip("\n")
                    texts.append(code)
                    raws.append(code)
                else:
                    logger.debug(f"Skipping {child.type} inside list item")

            items.append(ListItem(text="\n".join(texts), raw="\n".join(raws), level=level, ordered=ordered))
            for sub_list in nested:
                self._collect_list_items(sub_list, level + 1, items)

    def _build_table(self, node: SyntaxTreeNode) -> TableToken:
        header: tuple[TableCell, ...] = ()
        rows: list[tuple[TableCell, ...]] = []
        for section in node.children:
            for row in section.children:
                cells = tuple(self._build_cell(cell) for cell in row.children)
                if section.type == "thead" and not header:
                    header = cells
                else:
                    rows.append(cells)
        return TableToken(header=header, rows=tuple(rows))

    @staticmethod
    def _build_cell(cell: SyntaxTreeNode) -> TableCell:
        if not cell.children:
            return TableCell(text="", raw="")
        inline = cell.children[0].token
        return TableCell(text=render_clean_text(inline.children), raw=render_raw_text(inline.children))
