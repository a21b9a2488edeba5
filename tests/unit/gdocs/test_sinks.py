"""Tests for the positional and tree sinks."""

import pytest

from core.errors import UnsupportedBlockError
from gdocs.docs_requests import BULLET_PRESET_ORDERED, BULLET_PRESET_UNORDERED, CODE_FONT_FAMILY
from gdocs.document_tree import CODE_FONT_SIZE, HEADING_FONT_SIZES, ImageRun, Run, Table
from gdocs.images import ImageDescriptor, ImageEncoding, ImageSize
from gdocs.inline_styles import StyleKind, StyleSpan
from gdocs.sinks import (
    CellUnit,
    CodeUnit,
    HeadingUnit,
    ListItemUnit,
    ParagraphUnit,
    PositionalSink,
    ResolvedImage,
    RuleUnit,
    SeparatorUnit,
    TableUnit,
    TreeSink,
    build_runs,
)


def _of_kind(requests, kind):
    return [r[kind] for r in requests if kind in r]


def _image(position: int) -> ResolvedImage:
    return ResolvedImage(
        image=ImageDescriptor(payload=b"\x89PNG", encoding=ImageEncoding.PNG, position=position),
        size=ImageSize(200, 100),
    )


class TestPositionalText:
    def test_heading_consumes_length_plus_one(self):
        sink = PositionalSink()
        assert sink.emit(HeadingUnit(text="Title", depth=2), 1) == 6
        style = _of_kind(sink.result(), "updateParagraphStyle")[0]
        assert style["paragraphStyle"]["namedStyleType"] == "HEADING_2"
        assert "namedStyleType" in style["fields"]

    def test_empty_heading_emits_no_ranges(self):
        sink = PositionalSink()
        assert sink.emit(HeadingUnit(text="", depth=1), 1) == 1
        assert _of_kind(sink.result(), "updateParagraphStyle") == []
        assert _of_kind(sink.result(), "updateTextStyle") == []

    def test_paragraph_spans_offset_by_start(self):
        sink = PositionalSink()
        spans = (
            StyleSpan(0, 2, StyleKind.BOLD),
            StyleSpan(3, 2, StyleKind.ITALIC),
            StyleSpan(6, 1, StyleKind.CODE),
            StyleSpan(8, 1, StyleKind.LINK, url="https://example.com"),
        )
        sink.emit(ParagraphUnit(text="ab cd e f", spans=spans), 10)
        styles = _of_kind(sink.result(), "updateTextStyle")

        assert [s["range"] for s in styles] == [
            {"startIndex": 10, "endIndex": 12},
            {"startIndex": 13, "endIndex": 15},
            {"startIndex": 16, "endIndex": 17},
            {"startIndex": 18, "endIndex": 19},
        ]
        assert styles[1]["textStyle"] == {"italic": True}
        assert styles[2]["textStyle"]["weightedFontFamily"]["fontFamily"] == CODE_FONT_FAMILY
        assert styles[3]["textStyle"]["link"] == {"url": "https://example.com"}

    def test_line_breaks_become_vertical_tabs(self):
        sink = PositionalSink()
        assert sink.emit(ParagraphUnit(text="a\nb"), 1) == 4
        assert _of_kind(sink.result(), "insertText")[0]["text"] == "a\vb\n"

    def test_quoted_paragraph_has_border_and_italic(self):
        sink = PositionalSink()
        sink.emit(ParagraphUnit(text="quote", quote_level=1), 1)
        paragraph_style = _of_kind(sink.result(), "updateParagraphStyle")[0]["paragraphStyle"]
        assert "borderLeft" in paragraph_style
        assert {"italic": True} in [s["textStyle"] for s in _of_kind(sink.result(), "updateTextStyle")]

    def test_list_items(self):
        sink = PositionalSink()
        sink.emit(ListItemUnit(text="one", level=0, first=True), 1)
        sink.emit(ListItemUnit(text="two", level=1, ordered=True), 5)
        bullets = _of_kind(sink.result(), "createParagraphBullets")
        styles = _of_kind(sink.result(), "updateParagraphStyle")

        assert bullets[0]["bulletPreset"] == BULLET_PRESET_UNORDERED
        assert bullets[1]["bulletPreset"] == BULLET_PRESET_ORDERED
        assert bullets[1]["range"] == {"startIndex": 5, "endIndex": 8}
        assert styles[0]["paragraphStyle"]["spaceAbove"]["magnitude"] == 6
        assert styles[1]["paragraphStyle"]["spaceAbove"]["magnitude"] == 2
        assert styles[1]["paragraphStyle"]["indentStart"]["magnitude"] == 72

    def test_code_block(self):
        sink = PositionalSink()
        assert sink.emit(CodeUnit(text="a = 1\nb = 2"), 1) == 12
        assert _of_kind(sink.result(), "insertText")[0]["text"] == "a = 1\nb = 2\n"
        assert _of_kind(sink.result(), "updateTextStyle")[0]["range"] == {"startIndex": 1, "endIndex": 12}

    def test_separator(self):
        sink = PositionalSink()
        assert sink.emit(SeparatorUnit(), 7) == 1
        assert sink.result() == [{"insertText": {"location": {"index": 7}, "text": "\n"}}]

    def test_unknown_unit(self):
        with pytest.raises(UnsupportedBlockError):
            PositionalSink().emit("not a unit", 1)


class TestPositionalRule:
    def test_rule_borders_previous_paragraph(self):
        sink = PositionalSink()
        consumed = sink.emit(ParagraphUnit(text="above"), 1)
        assert sink.emit(RuleUnit(), 1 + consumed) == 0

        style = _of_kind(sink.result(), "updateParagraphStyle")[-1]
        assert style["range"] == {"startIndex": 6, "endIndex": 7}
        assert "borderBottom" in style["paragraphStyle"]

    def test_rule_at_document_start_is_skipped(self):
        sink = PositionalSink()
        assert sink.emit(RuleUnit(), 1) == 0
        assert sink.result() == []

    def test_rule_after_table_is_skipped(self):
        sink = PositionalSink()
        at = 1 + sink.emit(TableUnit(header=(CellUnit("a"),)), 1)
        before = len(sink.result())
        sink.emit(RuleUnit(), at)
        assert len(sink.result()) == before


class TestPositionalTable:
    def test_cell_indices_follow_table_layout(self):
        sink = PositionalSink()
        unit = TableUnit(
            header=(CellUnit("H1"), CellUnit("H2")),
            rows=((CellUnit("a"), CellUnit("bb")),),
        )
        consumed = sink.emit(unit, 10)
        requests = sink.result()

        assert requests[0] == {"insertTable": {"location": {"index": 10}, "rows": 2, "columns": 2}}
        # cell (r, c) starts at 10 + 3 + r * 5 + c * 2, shifted by earlier cell text
        assert [(t["location"]["index"], t["text"]) for t in _of_kind(requests, "insertText")] == [
            (13, "H1"),
            (17, "H2"),
            (22, "a"),
            (25, "bb"),
        ]
        assert consumed == 2 + 2 * 5 + 7

    def test_header_cells_bold(self):
        sink = PositionalSink()
        sink.emit(TableUnit(header=(CellUnit("H"),), rows=((CellUnit("v"),),)), 1)
        bold = _of_kind(sink.result(), "updateTextStyle")
        assert bold == [{"range": {"startIndex": 4, "endIndex": 5}, "textStyle": {"bold": True}, "fields": "bold"}]

    def test_ragged_rows_padded(self):
        sink = PositionalSink()
        sink.emit(TableUnit(header=(CellUnit("a"), CellUnit("b")), rows=((CellUnit("c"),),)), 1)
        assert sink.result()[0]["insertTable"]["columns"] == 2

    def test_empty_table_skipped(self):
        sink = PositionalSink()
        assert sink.emit(TableUnit(header=()), 1) == 0
        assert sink.result() == []

    def test_cell_spans(self):
        sink = PositionalSink()
        sink.emit(TableUnit(header=(CellUnit("h"),), rows=((CellUnit("xy", (StyleSpan(1, 1, StyleKind.ITALIC),)),),)), 1)
        italic = [s for s in _of_kind(sink.result(), "updateTextStyle") if s["textStyle"] == {"italic": True}]
        # body cell at 1 + 3 + 1 * 3, shifted by the header's one character
        assert italic[0]["range"] == {"startIndex": 9, "endIndex": 10}


class TestPositionalImages:
    def test_images_skipped_without_resolver(self):
        sink = PositionalSink()
        assert sink.emit(ParagraphUnit(text="a b", images=(_image(1),)), 1) == 4
        assert _of_kind(sink.result(), "insertInlineImage") == []

    def test_images_inserted_with_resolver(self):
        sink = PositionalSink(image_uri_resolver=lambda image: f"https://img.example/{image.position}")
        consumed = sink.emit(ParagraphUnit(text=" x ", images=(_image(0), _image(2))), 5)
        inserts = _of_kind(sink.result(), "insertInlineImage")

        assert consumed == 4 + 2
        assert [i["location"]["index"] for i in inserts] == [7, 5]
        assert inserts[0]["objectSize"]["width"] == {"magnitude": 150.0, "unit": "PT"}

    def test_unresolved_image_not_counted(self):
        sink = PositionalSink(image_uri_resolver=lambda image: None)
        assert sink.emit(ParagraphUnit(text=" ", images=(_image(0),)), 1) == 2


class TestBuildRuns:
    def test_plain_text_single_run(self):
        assert build_runs("hello") == [Run(text="hello")]

    def test_runs_split_at_span_boundaries(self):
        runs = build_runs("ab cd", (StyleSpan(3, 2, StyleKind.BOLD),))
        assert runs == [Run(text="ab "), Run(text="cd", bold=True)]

    def test_overlapping_spans_combine(self):
        spans = (StyleSpan(0, 4, StyleKind.BOLD), StyleSpan(2, 4, StyleKind.ITALIC))
        runs = build_runs("abcdef", spans)
        assert [(r.text, r.bold, r.italic) for r in runs] == [
            ("ab", True, False),
            ("cd", True, True),
            ("ef", False, True),
        ]

    def test_code_run_size(self):
        runs = build_runs("a b", (StyleSpan(2, 1, StyleKind.CODE),))
        assert runs[-1].code is True
        assert runs[-1].size == CODE_FONT_SIZE

    def test_image_replaces_placeholder(self):
        runs = build_runs("a b", images=(_image(1),))
        assert runs[0] == Run(text="a")
        assert isinstance(runs[1], ImageRun)
        assert (runs[1].width, runs[1].height) == (200, 100)
        assert runs[2] == Run(text="b")


class TestTreeSink:
    def test_heading_paragraph_list_code(self):
        sink = TreeSink()
        sink.emit(HeadingUnit(text="Title", depth=1), 1)
        sink.emit(ParagraphUnit(text="body"), 7)
        sink.emit(ListItemUnit(text="item", level=1, ordered=True, first=True), 12)
        sink.emit(CodeUnit(text="x = 1"), 17)
        children = sink.result().body.children

        assert children[0].style.heading_level == 1
        assert children[0].runs == [Run(text="Title", bold=True, size=HEADING_FONT_SIZES[1])]
        assert children[1].text == "body"
        assert (children[2].style.bullet_level, children[2].style.ordered) == (1, True)
        assert children[3].style.shading == "F5F5F5"
        assert children[3].runs[0].code is True

    def test_quote_paragraph(self):
        sink = TreeSink()
        sink.emit(ParagraphUnit(text="q", quote_level=1), 1)
        paragraph = sink.result().body.children[0]
        assert paragraph.style.border_left is True
        assert paragraph.style.indent_left == 720
        assert paragraph.runs[0].italic is True

    def test_rule_is_bordered_empty_paragraph(self):
        sink = TreeSink()
        assert sink.emit(RuleUnit(), 1) == 0
        rule = sink.result().body.children[0]
        assert rule.runs == []
        assert rule.style.border_bottom is True

    def test_table_equal_widths_and_bold_header(self):
        sink = TreeSink()
        sink.emit(
            TableUnit(
                header=(CellUnit("A"), CellUnit("B"), CellUnit("C"), CellUnit("D")),
                rows=((CellUnit("1"),),),
            ),
            1,
        )
        table = sink.result().body.children[0]

        assert isinstance(table, Table)
        assert table.column_widths == [25.0, 25.0, 25.0, 25.0]
        assert table.rows[0].header is True
        assert all(cell.paragraphs[0].runs[0].bold for cell in table.rows[0].cells)
        assert len(table.rows[1].cells) == 4
