"""Tests for .docx serialization, read back with python-docx."""

import io

import docx
import pytest
from docx.shared import Pt

from core.errors import RenderError
from gdocs import docx_export
from gdocs.docx_export import render_docx
from gdocs.document_tree import (
    Document,
    ImageRun,
    Paragraph,
    ParagraphStyle,
    Run,
    Table,
    TableCell,
    TableRow,
)
from gdocs.images import ImageDescriptor, ImageEncoding


def _read(document: Document):
    return docx.Document(io.BytesIO(render_docx(document)))


def _document(*children) -> Document:
    document = Document()
    document.body.children.extend(children)
    return document


class TestRenderDocx:
    def test_returns_zip_bytes(self):
        data = render_docx(Document())
        assert data[:2] == b"PK"

    def test_heading_and_body(self):
        result = _read(
            _document(
                Paragraph(runs=[Run(text="Title", bold=True, size=32)], style=ParagraphStyle(heading_level=1)),
                Paragraph(runs=[Run(text="Body ", size=None), Run(text="bold", bold=True)]),
            )
        )
        paragraphs = result.paragraphs

        assert paragraphs[0].style.name == "Heading 1"
        assert paragraphs[0].text == "Title"
        assert paragraphs[0].runs[0].font.size == Pt(16)
        assert paragraphs[1].text == "Body bold"
        assert paragraphs[1].runs[1].bold is True
        assert result.styles["Normal"].font.size == Pt(12)

    def test_list_styles(self):
        result = _read(
            _document(
                Paragraph(runs=[Run(text="a")], style=ParagraphStyle(bullet_level=0)),
                Paragraph(runs=[Run(text="b")], style=ParagraphStyle(bullet_level=1, ordered=True)),
                Paragraph(runs=[Run(text="c")], style=ParagraphStyle(bullet_level=5)),
            )
        )
        assert [p.style.name for p in result.paragraphs] == ["List Bullet", "List Number 2", "List Bullet 3"]

    def test_spacing_in_twips(self):
        result = _read(_document(Paragraph(runs=[Run(text="x")], style=ParagraphStyle(spacing_before=240))))
        assert result.paragraphs[0].paragraph_format.space_before == Pt(12)

    def test_code_run_font(self):
        result = _read(_document(Paragraph(runs=[Run(text="x = 1", code=True, size=20)])))
        run = result.paragraphs[0].runs[0]
        assert run.font.name == "Consolas"
        assert run.font.size == Pt(10)

    def test_borders_and_shading(self):
        result = _read(
            _document(
                Paragraph(style=ParagraphStyle(border_bottom=True)),
                Paragraph(runs=[Run(text="code")], style=ParagraphStyle(shading="F5F5F5")),
            )
        )
        rule_xml = result.paragraphs[0]._element.xml
        code_xml = result.paragraphs[1]._element.xml
        assert "w:pBdr" in rule_xml and "w:bottom" in rule_xml
        assert 'w:fill="F5F5F5"' in code_xml

    def test_paragraph_properties_in_schema_order(self):
        result = _read(
            _document(
                Paragraph(style=ParagraphStyle(border_left=True, indent_left=720, spacing_before=120)),
                Paragraph(runs=[Run(text="code")], style=ParagraphStyle(shading="F5F5F5", spacing_after=120)),
            )
        )
        quote_order = [child.tag.split("}")[1] for child in result.paragraphs[0]._element.pPr]
        code_order = [child.tag.split("}")[1] for child in result.paragraphs[1]._element.pPr]

        assert quote_order.index("pBdr") < quote_order.index("spacing") < quote_order.index("ind")
        assert code_order.index("shd") < code_order.index("spacing")

    def test_hyperlink(self):
        result = _read(_document(Paragraph(runs=[Run(text="docs", link="https://example.com")])))
        xml = result.paragraphs[0]._element.xml
        assert "w:hyperlink" in xml
        assert "docs" in xml
        assert any(rel.target_ref == "https://example.com" for rel in result.part.rels.values())

    def test_table(self):
        def cell(text, bold=False):
            return TableCell([Paragraph(runs=[Run(text=text, bold=bold)])])

        table = Table(
            rows=[
                TableRow(cells=[cell("A", bold=True), cell("B", bold=True)], header=True),
                TableRow(cells=[cell("1"), cell("2")]),
            ],
            column_widths=[50.0, 50.0],
        )
        result = _read(_document(table))
        docx_table = result.tables[0]

        assert docx_table.style.name == "Table Grid"
        assert [[c.text for c in row.cells] for row in docx_table.rows] == [["A", "B"], ["1", "2"]]

    def test_png_image_embedded(self, png_factory):
        image = ImageDescriptor(payload=png_factory(4, 2), encoding=ImageEncoding.PNG, position=0)
        result = _read(_document(Paragraph(runs=[ImageRun(image=image, width=4, height=2)])))
        assert len(result.inline_shapes) == 1

    def test_unreadable_image_becomes_placeholder(self):
        image = ImageDescriptor(payload=b"not an image", encoding=ImageEncoding.BMP, position=0)
        result = _read(_document(Paragraph(runs=[ImageRun(image=image, width=400, height=300)])))
        assert result.paragraphs[0].text == "[bmp image not embedded]"

    def test_svg_image_rasterized(self, monkeypatch, png_factory):
        monkeypatch.setattr(docx_export, "_svg_to_png", lambda payload, width_px: png_factory(4, 2))
        image = ImageDescriptor(payload=b"<svg/>", encoding=ImageEncoding.SVG, position=0)
        result = _read(_document(Paragraph(runs=[ImageRun(image=image, width=4, height=2)])))
        assert len(result.inline_shapes) == 1

    def test_svg_without_rasterizer_becomes_placeholder(self, monkeypatch):
        def _unavailable(payload, width_px):
            raise OSError("no library called cairo was found")

        monkeypatch.setattr(docx_export, "_svg_to_png", _unavailable)
        image = ImageDescriptor(payload=b"<svg/>", encoding=ImageEncoding.SVG, position=0)
        result = _read(_document(Paragraph(runs=[ImageRun(image=image, width=400, height=300)])))

        assert len(result.inline_shapes) == 0
        assert result.paragraphs[0].text == "[svg image not embedded]"

    def test_save_failure_wrapped(self, monkeypatch):
        def _broken(document):
            raise ValueError("boom")

        monkeypatch.setattr(docx_export, "build_docx", _broken)
        with pytest.raises(RenderError):
            render_docx(Document())
