"""
Local document tree built by `gdocs.sinks.TreeSink` and serialized by
`gdocs.docx_export.render_docx`.

Units follow WordprocessingML: font sizes are half-points, spacing and
indentation are twentieths of a point (twips). Image sizes are pixels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from gdocs.images import ImageDescriptor

# Font sizes in half-points
BODY_FONT_SIZE = 24
CODE_FONT_SIZE = 20
HEADING_FONT_SIZES: dict[int, int] = {1: 32, 2: 28, 3: 24, 4: 24, 5: 24, 6: 24}


@dataclass
class Run:
    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    strikethrough: bool = False
    link: str | None = None
    size: int | None = None


@dataclass
class ImageRun:
    image: ImageDescriptor
    width: int
    height: float


InlineNode = Union[Run, ImageRun]


@dataclass
class ParagraphStyle:
    heading_level: int | None = None
    bullet_level: int | None = None
    ordered: bool = False
    spacing_before: int = 0
    spacing_after: int = 0
    indent_left: int = 0
    border_left: bool = False
    border_bottom: bool = False
    shading: str | None = None  # hex fill, e.g. "F5F5F5"


@dataclass
class Paragraph:
    runs: list[InlineNode] = field(default_factory=list)
    style: ParagraphStyle = field(default_factory=ParagraphStyle)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs if isinstance(run, Run))


@dataclass
class TableCell:
    paragraphs: list[Paragraph] = field(default_factory=list)


@dataclass
class TableRow:
    cells: list[TableCell] = field(default_factory=list)
    header: bool = False


@dataclass
class Table:
    rows: list[TableRow] = field(default_factory=list)
    column_widths: list[float] = field(default_factory=list)  # percentages of the text width


BlockNode = Union[Paragraph, Table]


@dataclass
class Section:
    children: list[BlockNode] = field(default_factory=list)


@dataclass
class Document:
    sections: list[Section] = field(default_factory=lambda: [Section()])

    @property
    def body(self) -> Section:
        return self.sections[-1]
