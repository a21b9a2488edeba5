"""
Emitted Units and Output Sinks

`gdocs.emitter.BlockEmitter` turns block tokens into the closed set of units
defined here and hands each one to a sink together with the absolute index it
starts at. Two sinks consume the same units:

- `PositionalSink` produces Google Docs `batchUpdate` requests. All requests are
  sent in one batch, so every index must already account for every earlier
  insertion. `emit()` returns how many document indices the unit consumed and
  the emitter advances its cursor by exactly that amount.
- `TreeSink` builds a `gdocs.document_tree.Document` for `.docx` export. It has
  no index bookkeeping of its own.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Union

from core.errors import UnsupportedBlockError
from gdocs.docs_requests import (
    LINK_COLOR,
    blockquote_paragraph_style,
    code_text_style,
    create_bullet_list_request,
    create_insert_image_request,
    create_insert_table_request,
    create_insert_text_request,
    create_paragraph_style_request,
    create_text_style_request,
    horizontal_rule_paragraph_style,
    pt,
)
from gdocs.document_tree import (
    BODY_FONT_SIZE,
    CODE_FONT_SIZE,
    HEADING_FONT_SIZES,
    Document,
    ImageRun,
    InlineNode,
    Paragraph,
    ParagraphStyle,
    Run,
    Table,
    TableCell,
    TableRow,
)
from gdocs.images import ImageDescriptor, ImageSize
from gdocs.inline_styles import StyleKind, StyleSpan

logger = logging.getLogger(__name__)

PX_TO_PT = 0.75

# Google Docs paragraph break inside a paragraph (Shift+Enter)
DOCS_LINE_BREAK = "\u000b"

# Positional spacing, in points
HEADING_SPACE_ABOVE_PT = 10
HEADING_SPACE_BELOW_PT = 5
PARAGRAPH_SPACE_PT = 5
PARAGRAPH_LINE_SPACING = 115
LIST_INDENT_PT = 36
LIST_FIRST_ITEM_SPACE_ABOVE_PT = 6
LIST_ITEM_SPACE_PT = 2

# Tree spacing, in twentieths of a point
HEADING_SPACING_BEFORE = 240
HEADING_SPACING_AFTER = 120
PARAGRAPH_SPACING = 120
LIST_FIRST_ITEM_SPACING_BEFORE = 120
LIST_ITEM_SPACING = 40
CODE_SPACING = 80
BLOCKQUOTE_INDENT = 720
CODE_SHADING = "F5F5F5"

ImageUriResolver = Callable[[ImageDescriptor], Union[str, None]]


@dataclass(frozen=True)
class ResolvedImage:
    image: ImageDescriptor
    size: ImageSize


@dataclass(frozen=True)
class HeadingUnit:
    text: str
    depth: int


@dataclass(frozen=True)
class ParagraphUnit:
    text: str
    spans: tuple[StyleSpan, ...] = ()
    images: tuple[ResolvedImage, ...] = ()
    quote_level: int = 0


@dataclass(frozen=True)
class ListItemUnit:
    text: str
    spans: tuple[StyleSpan, ...] = ()
    images: tuple[ResolvedImage, ...] = ()
    level: int = 0
    ordered: bool = False
    first: bool = False


@dataclass(frozen=True)
class CodeUnit:
    text: str
    lang: str = ""


@dataclass(frozen=True)
class RuleUnit:
    pass


@dataclass(frozen=True)
class CellUnit:
    text: str
    spans: tuple[StyleSpan, ...] = ()


@dataclass(frozen=True)
class TableUnit:
    header: tuple[CellUnit, ...]
    rows: tuple[tuple[CellUnit, ...], ...] = ()


@dataclass(frozen=True)
class SeparatorUnit:
    pass


EmittedUnit = Union[HeadingUnit, ParagraphUnit, ListItemUnit, CodeUnit, RuleUnit, TableUnit, SeparatorUnit]


class BaseSink(ABC):
    """
    Consumer of emitted units.

    `emit()` dispatches over the closed unit set; each handler receives the
    absolute index the unit starts at and returns the number of indices it
    consumed.
    """

    def emit(self, unit: EmittedUnit, at: int) -> int:
        if isinstance(unit, HeadingUnit):
            return self.heading(unit, at)
        elif isinstance(unit, ParagraphUnit):
            return self.paragraph(unit, at)
        elif isinstance(unit, ListItemUnit):
            return self.list_item(unit, at)
        elif isinstance(unit, CodeUnit):
            return self.code(unit, at)
        elif isinstance(unit, RuleUnit):
            return self.rule(unit, at)
        elif isinstance(unit, TableUnit):
            return self.table(unit, at)
        elif isinstance(unit, SeparatorUnit):
            return self.separator(unit, at)
        raise UnsupportedBlockError(unit)

    @abstractmethod
    def heading(self, unit: HeadingUnit, at: int) -> int: ...

    @abstractmethod
    def paragraph(self, unit: ParagraphUnit, at: int) -> int: ...

    @abstractmethod
    def list_item(self, unit: ListItemUnit, at: int) -> int: ...

    @abstractmethod
    def code(self, unit: CodeUnit, at: int) -> int: ...

    @abstractmethod
    def rule(self, unit: RuleUnit, at: int) -> int: ...

    @abstractmethod
    def table(self, unit: TableUnit, at: int) -> int: ...

    @abstractmethod
    def separator(self, unit: SeparatorUnit, at: int) -> int: ...

    @abstractmethod
    def result(self) -> Any:
        """Return the accumulated output."""


def table_grid(unit: TableUnit) -> list[list[CellUnit]]:
    """Header row plus data rows, padded to a common column count."""
    grid = [list(unit.header)] + [list(row) for row in unit.rows]
    grid = [row for row in grid if row]
    cols = max((len(row) for row in grid), default=0)
    for row in grid:
        while len(row) < cols:
            row.append(CellUnit(text=""))
    return grid


# =============================================================================
# Positional backend
# =============================================================================


def span_text_style(span: StyleSpan) -> dict[str, Any]:
    """Google Docs textStyle for one inline span."""
    if span.kind is StyleKind.BOLD:
        return {"bold": True}
    elif span.kind is StyleKind.ITALIC:
        return {"italic": True}
    elif span.kind is StyleKind.CODE:
        return code_text_style()
    elif span.kind is StyleKind.STRIKETHROUGH:
        return {"strikethrough": True}
    elif span.kind is StyleKind.LINK:
        return {
            "link": {"url": span.url or ""},
            "underline": True,
            "foregroundColor": {"color": {"rgbColor": LINK_COLOR}},
        }
    raise UnsupportedBlockError(span.kind)


class PositionalSink(BaseSink):
    """
    Builds Google Docs API batchUpdate requests at absolute indices.

    Embedded images can only be placed when `image_uri_resolver` maps an image
    to a URI the Docs API can fetch (the API does not accept raw bytes). Without
    a resolver, images are skipped and their placeholder space remains.

    Example:
        >>> sink = PositionalSink()
        >>> sink.emit(HeadingUnit(text="Title", depth=1), at=1)
        6
        >>> [next(iter(r)) for r in sink.result()]
        ['insertText', 'updateParagraphStyle', 'updateTextStyle']
    """

    def __init__(self, image_uri_resolver: ImageUriResolver | None = None) -> None:
        self.requests: list[dict] = []
        self.image_uri_resolver = image_uri_resolver
        # True when the block just before the cursor ends with a paragraph newline
        self._after_paragraph = False

    def result(self) -> list[dict]:
        return list(self.requests)

    def heading(self, unit: HeadingUnit, at: int) -> int:
        end = at + len(unit.text)
        self.requests.append(create_insert_text_request(at, unit.text + "\n"))
        if end > at:
            self.requests.append(
                create_paragraph_style_request(
                    at,
                    end,
                    {
                        "namedStyleType": f"HEADING_{unit.depth}",
                        "spaceAbove": pt(HEADING_SPACE_ABOVE_PT),
                        "spaceBelow": pt(HEADING_SPACE_BELOW_PT),
                    },
                )
            )
            self.requests.append(create_text_style_request(at, end, {"bold": True}))
        logger.debug(f"Heading HEADING_{unit.depth} at [{at}, {end})")
        self._after_paragraph = True
        return len(unit.text) + 1

    def paragraph(self, unit: ParagraphUnit, at: int) -> int:
        end = at + len(unit.text)
        self.requests.append(create_insert_text_request(at, unit.text.replace("\n", DOCS_LINE_BREAK) + "\n"))
        self._append_span_styles(unit.spans, at)

        if end > at:
            if unit.quote_level > 0:
                self.requests.append(create_paragraph_style_request(at, end, blockquote_paragraph_style(unit.quote_level)))
                self.requests.append(create_text_style_request(at, end, {"italic": True}))
            else:
                self.requests.append(
                    create_paragraph_style_request(
                        at,
                        end,
                        {
                            "spaceAbove": pt(PARAGRAPH_SPACE_PT),
                            "spaceBelow": pt(PARAGRAPH_SPACE_PT),
                            "lineSpacing": PARAGRAPH_LINE_SPACING,
                        },
                    )
                )

        inserted = self._insert_images(unit.images, at)
        logger.debug(f"Paragraph at [{at}, {end}): {len(unit.spans)} span(s), {inserted} image(s)")
        self._after_paragraph = True
        return len(unit.text) + 1 + inserted

    def list_item(self, unit: ListItemUnit, at: int) -> int:
        end = at + len(unit.text)
        self.requests.append(create_insert_text_request(at, unit.text.replace("\n", DOCS_LINE_BREAK) + "\n"))
        if end > at:
            self.requests.append(create_bullet_list_request(at, end, ordered=unit.ordered))
            space_above = LIST_FIRST_ITEM_SPACE_ABOVE_PT if unit.first else LIST_ITEM_SPACE_PT
            self.requests.append(
                create_paragraph_style_request(
                    at,
                    end,
                    {
                        "indentStart": pt(LIST_INDENT_PT * (unit.level + 1)),
                        "spaceAbove": pt(space_above),
                        "spaceBelow": pt(LIST_ITEM_SPACE_PT),
                    },
                )
            )
        self._append_span_styles(unit.spans, at)

        inserted = self._insert_images(unit.images, at)
        logger.debug(f"List item (level={unit.level}, ordered={unit.ordered}) at [{at}, {end})")
        self._after_paragraph = True
        return len(unit.text) + 1 + inserted

    def code(self, unit: CodeUnit, at: int) -> int:
        end = at + len(unit.text)
        self.requests.append(create_insert_text_request(at, unit.text + "\n"))
        if end > at:
            self.requests.append(create_text_style_request(at, end, code_text_style()))
        logger.debug(f"Code block: {len(unit.text)} chars, range [{at}, {end})")
        self._after_paragraph = True
        return len(unit.text) + 1

    def rule(self, unit: RuleUnit, at: int) -> int:
        # No text is inserted: the paragraph just before the cursor gets the bottom border
        if not self._after_paragraph:
            logger.debug(f"Horizontal rule at {at} has no preceding paragraph, skipping")
            return 0
        self.requests.append(create_paragraph_style_request(at - 1, at, horizontal_rule_paragraph_style()))
        logger.debug(f"Horizontal rule as bottom border on [{at - 1}, {at})")
        return 0

    def table(self, unit: TableUnit, at: int) -> int:
        """
        Insert a table and populate its cells.

        Google Docs table index math:
        - First cell content of a table inserted at `I` starts at `I + 3`
        - Each cell occupies 2 indices (content + cell boundary)
        - Each row adds 1 more index for the row boundary

        For cell (r, c) of an R x C table, before any text is inserted:
            cell_start = I + 3 + r * (2 * C + 1) + c * 2

        Cells are filled in row-major order, so each insertion point is shifted by
        the text already inserted into earlier cells. The table consumes
        `2 + R * (2 * C + 1)` indices plus all inserted cell text.
        """
        grid = table_grid(unit)
        rows = len(grid)
        cols = len(grid[0]) if grid else 0
        if rows == 0 or cols == 0:
            logger.warning(f"Skipping table with invalid dimensions: {rows}x{cols}")
            return 0

        self.requests.append(create_insert_table_request(at, rows, cols))

        text_offset = 0
        for r, row in enumerate(grid):
            for c, cell in enumerate(row):
                if not cell.text:
                    continue

                base_cell_index = at + 3 + r * (2 * cols + 1) + c * 2
                insertion_index = base_cell_index + text_offset
                self.requests.append(create_insert_text_request(insertion_index, cell.text))
                if r == 0:
                    self.requests.append(
                        create_text_style_request(insertion_index, insertion_index + len(cell.text), {"bold": True})
                    )
                self._append_span_styles(cell.spans, insertion_index)
                logger.debug(f"Table cell ({r},{c}): {cell.text!r} at {insertion_index} (base={base_cell_index})")
                text_offset += len(cell.text)

        consumed = 2 + rows * (2 * cols + 1) + text_offset
        logger.debug(f"Table complete: {rows}x{cols}, {text_offset} chars, {consumed} indices")
        self._after_paragraph = False
        return consumed

    def separator(self, unit: SeparatorUnit, at: int) -> int:
        self.requests.append(create_insert_text_request(at, "\n"))
        self._after_paragraph = True
        return 1

    def _append_span_styles(self, spans: tuple[StyleSpan, ...], at: int) -> None:
        for span in spans:
            self.requests.append(create_text_style_request(at + span.start, at + span.end, span_text_style(span)))

    def _insert_images(self, images: tuple[ResolvedImage, ...], at: int) -> int:
        """Insert images in reverse text order so earlier positions stay valid."""
        if not images:
            return 0
        if self.image_uri_resolver is None:
            logger.warning(f"Skipping {len(images)} embedded image(s): no image URI resolver configured")
            return 0

        inserted = 0
        for resolved in sorted(images, key=lambda i: i.image.position, reverse=True):
            uri = self.image_uri_resolver(resolved.image)
            if not uri:
                logger.warning(f"No URI for {resolved.image.encoding.value} image at offset {resolved.image.position}")
                continue
            self.requests.append(
                create_insert_image_request(
                    at + resolved.image.position,
                    uri,
                    resolved.size.width * PX_TO_PT,
                    resolved.size.height * PX_TO_PT,
                )
            )
            inserted += 1
        return inserted


# =============================================================================
# Tree backend
# =============================================================================


def build_runs(
    text: str,
    spans: tuple[StyleSpan, ...] = (),
    images: tuple[ResolvedImage, ...] = (),
    size: int | None = None,
) -> list[InlineNode]:
    """
    Split text into runs at every span and image boundary.

    Each image replaces its placeholder space. Overlapping spans combine on
    the runs they share.
    """
    image_at = {r.image.position: r for r in images if 0 <= r.image.position < len(text)}
    bounds = {0, len(text)}
    for span in spans:
        bounds.update((span.start, span.end))
    for position in image_at:
        bounds.update((position, position + 1))
    ordered_bounds = sorted(b for b in bounds if 0 <= b <= len(text))

    runs: list[InlineNode] = []
    for start, end in zip(ordered_bounds, ordered_bounds[1:]):
        resolved = image_at.get(start)
        if resolved is not None and end == start + 1:
            runs.append(ImageRun(image=resolved.image, width=resolved.size.width, height=resolved.size.height))
            continue

        covering = [s for s in spans if s.start <= start and s.end >= end]
        kinds = {s.kind for s in covering}
        link = next((s.url for s in covering if s.kind is StyleKind.LINK), None)
        code = StyleKind.CODE in kinds
        runs.append(
            Run(
                text=text[start:end],
                bold=StyleKind.BOLD in kinds,
                italic=StyleKind.ITALIC in kinds,
                code=code,
                strikethrough=StyleKind.STRIKETHROUGH in kinds,
                link=link,
                size=CODE_FONT_SIZE if code else size,
            )
        )
    return runs


class TreeSink(BaseSink):
    """Builds a local document tree for `.docx` serialization."""

    def __init__(self) -> None:
        self.document = Document()

    def result(self) -> Document:
        return self.document

    def _append(self, node: Paragraph | Table) -> None:
        self.document.body.children.append(node)

    def heading(self, unit: HeadingUnit, at: int) -> int:
        runs: list[InlineNode] = []
        if unit.text:
            runs.append(Run(text=unit.text, bold=True, size=HEADING_FONT_SIZES.get(unit.depth, BODY_FONT_SIZE)))
        self._append(
            Paragraph(
                runs=runs,
                style=ParagraphStyle(
                    heading_level=unit.depth,
                    spacing_before=HEADING_SPACING_BEFORE,
                    spacing_after=HEADING_SPACING_AFTER,
                ),
            )
        )
        return len(unit.text) + 1

    def paragraph(self, unit: ParagraphUnit, at: int) -> int:
        runs = build_runs(unit.text, unit.spans, unit.images)
        style = ParagraphStyle(spacing_before=PARAGRAPH_SPACING, spacing_after=PARAGRAPH_SPACING)
        if unit.quote_level > 0:
            style.indent_left = BLOCKQUOTE_INDENT * unit.quote_level
            style.border_left = True
            for run in runs:
                if isinstance(run, Run):
                    run.italic = True
        self._append(Paragraph(runs=runs, style=style))
        return len(unit.text) + 1

    def list_item(self, unit: ListItemUnit, at: int) -> int:
        self._append(
            Paragraph(
                runs=build_runs(unit.text, unit.spans, unit.images),
                style=ParagraphStyle(
                    bullet_level=unit.level,
                    ordered=unit.ordered,
                    spacing_before=LIST_FIRST_ITEM_SPACING_BEFORE if unit.first else LIST_ITEM_SPACING,
                    spacing_after=LIST_ITEM_SPACING,
                ),
            )
        )
        return len(unit.text) + 1

    def code(self, unit: CodeUnit, at: int) -> int:
        runs: list[InlineNode] = []
        if unit.text:
            runs.append(Run(text=unit.text, code=True, size=CODE_FONT_SIZE))
        self._append(
            Paragraph(
                runs=runs,
                style=ParagraphStyle(spacing_before=CODE_SPACING, spacing_after=CODE_SPACING, shading=CODE_SHADING),
            )
        )
        return len(unit.text) + 1

    def rule(self, unit: RuleUnit, at: int) -> int:
        self._append(Paragraph(style=ParagraphStyle(border_bottom=True)))
        return 0

    def table(self, unit: TableUnit, at: int) -> int:
        grid = table_grid(unit)
        cols = len(grid[0]) if grid else 0
        if cols == 0:
            logger.warning("Skipping empty table")
            return 0

        table = Table(column_widths=[100.0 / cols] * cols)
        for r, row in enumerate(grid):
            cells = []
            for cell in row:
                runs = build_runs(cell.text, cell.spans)
                if r == 0:
                    for run in runs:
                        if isinstance(run, Run):
                            run.bold = True
                cells.append(TableCell(paragraphs=[Paragraph(runs=runs)]))
            table.rows.append(TableRow(cells=cells, header=r == 0))
        self._append(table)
        return 0

    def separator(self, unit: SeparatorUnit, at: int) -> int:
        self._append(Paragraph())
        return 1
