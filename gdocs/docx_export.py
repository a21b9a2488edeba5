"""
Document tree to .docx serialization, built on python-docx.

Font sizes in the tree are half-points and spacing is in twentieths of a
point, which map directly onto `Pt(size / 2)` and `Twips(value)`.
"""

from __future__ import annotations

import io
import logging
from xml.sax.saxutils import escape

from docx import Document as new_docx
from docx.document import Document as DocxDocument
from docx.image.exceptions import InvalidImageStreamError, UnexpectedEndOfFileError, UnrecognizedImageError
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls
from docx.shared import Emu, Pt, Twips
from docx.text.paragraph import Paragraph as DocxParagraph

from core.errors import RenderError
from gdocs.document_tree import BODY_FONT_SIZE, Document, ImageRun, Paragraph, Run, Table
from gdocs.images import ImageEncoding

logger = logging.getLogger(__name__)

BODY_FONT = "Arial"
CODE_FONT = "Consolas"
LINK_COLOR_HEX = "0563C1"
BORDER_COLOR_HEX = "B3B3B3"
EMU_PER_PIXEL = 9525
MAX_LIST_STYLE_LEVEL = 3  # "List Bullet", "List Bullet 2", "List Bullet 3"

HYPERLINK_RELATIONSHIP = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink"
RELATIONSHIPS_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"


# CT_PPr children that must follow w:pBdr and w:shd, in schema order
_PPR_SUCCESSORS = (
    "w:tabs",
    "w:suppressAutoHyphens",
    "w:kinsoku",
    "w:wordWrap",
    "w:overflowPunct",
    "w:topLinePunct",
    "w:autoSpaceDE",
    "w:autoSpaceDN",
    "w:bidi",
    "w:adjustRightInd",
    "w:snapToGrid",
    "w:spacing",
    "w:ind",
    "w:contextualSpacing",
    "w:mirrorIndents",
    "w:suppressOverlap",
    "w:jc",
    "w:textDirection",
    "w:textAlignment",
    "w:textboxTightWrap",
    "w:outlineLvl",
    "w:divId",
    "w:cnfStyle",
    "w:rPr",
    "w:sectPr",
    "w:pPrChange",
)


def _half_points(size: int) -> Pt:
    return Pt(size / 2)


def _list_style_name(ordered: bool, level: int) -> str:
    base = "List Number" if ordered else "List Bullet"
    depth = min(level + 1, MAX_LIST_STYLE_LEVEL)
    return base if depth == 1 else f"{base} {depth}"


def _set_borders(paragraph: DocxParagraph, left: bool, bottom: bool) -> None:
    edges = []
    if left:
        edges.append(f'<w:left w:val="single" w:sz="18" w:space="8" w:color="{BORDER_COLOR_HEX}"/>')
    if bottom:
        edges.append(f'<w:bottom w:val="single" w:sz="6" w:space="1" w:color="{BORDER_COLOR_HEX}"/>')
    paragraph._element.get_or_add_pPr().insert_element_before(
        parse_xml(f'<w:pBdr {nsdecls("w")}>{"".join(edges)}</w:pBdr>'), "w:shd", *_PPR_SUCCESSORS
    )


def _set_shading(paragraph: DocxParagraph, fill: str) -> None:
    paragraph._element.get_or_add_pPr().insert_element_before(
        parse_xml(f'<w:shd {nsdecls("w")} w:fill="{fill}" w:val="clear"/>'), *_PPR_SUCCESSORS
    )


def _add_hyperlink(paragraph: DocxParagraph, run: Run) -> None:
    """Append a clickable hyperlink carrying the run's formatting."""
    r_id = paragraph.part.relate_to(run.link, HYPERLINK_RELATIONSHIP, is_external=True)
    properties = [f'<w:color w:val="{LINK_COLOR_HEX}"/>', '<w:u w:val="single"/>']
    if run.bold:
        properties.append("<w:b/>")
    if run.italic:
        properties.append("<w:i/>")
    if run.strikethrough:
        properties.append("<w:strike/>")
    if run.size:
        properties.append(f'<w:sz w:val="{run.size}"/>')
    hyperlink = parse_xml(
        f'<w:hyperlink {nsdecls("w")} r:id="{r_id}" xmlns:r="{RELATIONSHIPS_NS}">'
        f'<w:r><w:rPr>{"".join(properties)}</w:rPr>'
        f'<w:t xml:space="preserve">{escape(run.text)}</w:t></w:r></w:hyperlink>'
    )
    paragraph._element.append(hyperlink)


def _add_run(paragraph: DocxParagraph, run: Run) -> None:
    if run.link:
        _add_hyperlink(paragraph, run)
        return

    docx_run = paragraph.add_run(run.text)
    docx_run.bold = run.bold or None
    docx_run.italic = run.italic or None
    if run.strikethrough:
        docx_run.font.strike = True
    if run.code:
        docx_run.font.name = CODE_FONT
    if run.size:
        docx_run.font.size = _half_points(run.size)


def _svg_to_png(payload: bytes, width_px: int) -> bytes:
    """Rasterize an SVG payload; Word cannot embed SVG without a raster fallback."""
    # cairosvg loads the native cairo library on import
    import cairosvg

    return cairosvg.svg2png(bytestring=payload, output_width=width_px)


def _add_image_placeholder(paragraph: DocxParagraph, image_run: ImageRun) -> None:
    paragraph.add_run(f"[{image_run.image.encoding.value} image not embedded]").italic = True


def _add_image(paragraph: DocxParagraph, image_run: ImageRun) -> None:
    payload = image_run.image.payload
    if image_run.image.encoding is ImageEncoding.SVG:
        try:
            payload = _svg_to_png(payload, max(1, int(image_run.width)))
        except (ImportError, OSError, ValueError, SyntaxError) as e:
            logger.warning(f"Cannot rasterize svg image for .docx: {e}")
            _add_image_placeholder(paragraph, image_run)
            return

    try:
        paragraph.add_run().add_picture(
            io.BytesIO(payload),
            width=Emu(int(image_run.width * EMU_PER_PIXEL)),
            height=Emu(int(image_run.height * EMU_PER_PIXEL)),
        )
    except (UnrecognizedImageError, InvalidImageStreamError, UnexpectedEndOfFileError) as e:
        logger.warning(f"Cannot embed {image_run.image.encoding.value} image in .docx: {e}")
        _add_image_placeholder(paragraph, image_run)


def _fill_paragraph(docx_paragraph: DocxParagraph, paragraph: Paragraph) -> None:
    style = paragraph.style
    fmt = docx_paragraph.paragraph_format
    if style.spacing_before:
        fmt.space_before = Twips(style.spacing_before)
    if style.spacing_after:
        fmt.space_after = Twips(style.spacing_after)
    if style.indent_left:
        fmt.left_indent = Twips(style.indent_left)
    if style.border_left or style.border_bottom:
        _set_borders(docx_paragraph, left=style.border_left, bottom=style.border_bottom)
    if style.shading:
        _set_shading(docx_paragraph, style.shading)

    for run in paragraph.runs:
        if isinstance(run, ImageRun):
            _add_image(docx_paragraph, run)
        else:
            _add_run(docx_paragraph, run)


def _add_paragraph(doc: DocxDocument, paragraph: Paragraph) -> None:
    style = paragraph.style
    if style.heading_level:
        docx_paragraph = doc.add_paragraph(style=f"Heading {style.heading_level}")
    elif style.bullet_level is not None:
        docx_paragraph = doc.add_paragraph(style=_list_style_name(style.ordered, style.bullet_level))
    else:
        docx_paragraph = doc.add_paragraph()
    _fill_paragraph(docx_paragraph, paragraph)


def _add_table(doc: DocxDocument, table: Table) -> None:
    cols = len(table.column_widths) or max((len(row.cells) for row in table.rows), default=0)
    if not table.rows or cols == 0:
        return

    docx_table = doc.add_table(rows=len(table.rows), cols=cols)
    docx_table.style = "Table Grid"

    section = doc.sections[-1]
    text_width = section.page_width - section.left_margin - section.right_margin
    for col, percent in zip(docx_table.columns, table.column_widths):
        width = Emu(int(text_width * percent / 100))
        col.width = width
        for cell in col.cells:
            cell.width = width

    for r, row in enumerate(table.rows):
        for c, cell in enumerate(row.cells[:cols]):
            docx_cell = docx_table.cell(r, c)
            for i, paragraph in enumerate(cell.paragraphs):
                target = docx_cell.paragraphs[0] if i == 0 else docx_cell.add_paragraph()
                _fill_paragraph(target, paragraph)


def build_docx(document: Document) -> DocxDocument:
    """Build a python-docx Document from the tree."""
    doc = new_docx()
    normal = doc.styles["Normal"]
    normal.font.name = BODY_FONT
    normal.font.size = _half_points(BODY_FONT_SIZE)

    for section in document.sections:
        for node in section.children:
            if isinstance(node, Table):
                _add_table(doc, node)
            else:
                _add_paragraph(doc, node)
    return doc


def render_docx(document: Document) -> bytes:
    """
    Serialize a document tree to `.docx` bytes.

    Raises:
        RenderError: If python-docx fails to build or save the package.
    """
    try:
        doc = build_docx(document)
        buffer = io.BytesIO()
        doc.save(buffer)
    except (KeyError, ValueError, OSError) as e:
        raise RenderError(f"Failed to render .docx: {e}") from e

    data = buffer.getvalue()
    logger.debug(f"Rendered .docx: {len(data)} bytes")
    return data
