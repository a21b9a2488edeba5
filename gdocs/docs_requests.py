"""
Google Docs batchUpdate request builders.

Each helper returns one request dictionary in the exact shape expected by
`documents.batchUpdate`. Ranges are half-open `[start_index, end_index)`.
"""

from typing import Any

# Bullet list presets for the Google Docs API
BULLET_PRESET_UNORDERED = "BULLET_DISC_CIRCLE_SQUARE"
BULLET_PRESET_ORDERED = "NUMBERED_DECIMAL_ALPHA_ROMAN"

# Code styling constants
CODE_FONT_FAMILY = "Consolas"
CODE_BACKGROUND_COLOR = {"red": 0.96, "green": 0.96, "blue": 0.96}  # #f5f5f5

# Blockquote styling constants
BLOCKQUOTE_INDENT_PT = 36
BLOCKQUOTE_BORDER_WIDTH_PT = 3.0
BLOCKQUOTE_BORDER_PADDING_PT = 12.0
BLOCKQUOTE_BORDER_COLOR = {"red": 0.7, "green": 0.7, "blue": 0.7}

# Horizontal rule styling constants
# Google Docs has no native HR, so a paragraph gets a bottom border instead
HR_BORDER_WIDTH_PT = 1.0
HR_BORDER_COLOR = {"red": 0.7, "green": 0.7, "blue": 0.7}  # #b3b3b3 light gray
HR_PADDING_BELOW_PT = 6

LINK_COLOR = {"red": 0.02, "green": 0.39, "blue": 0.76}  # #0563c1


def pt(magnitude: float) -> dict[str, Any]:
    """Build a Dimension in points."""
    return {"magnitude": magnitude, "unit": "PT"}


def index_range(start_index: int, end_index: int) -> dict[str, int]:
    return {"startIndex": start_index, "endIndex": end_index}


def create_insert_text_request(index: int, text: str) -> dict[str, Any]:
    return {
        "insertText": {
            "location": {"index": index},
            "text": text,
        }
    }


def create_paragraph_style_request(start_index: int, end_index: int, paragraph_style: dict[str, Any]) -> dict[str, Any]:
    """Build an updateParagraphStyle request; the fields mask follows the style keys."""
    return {
        "updateParagraphStyle": {
            "range": index_range(start_index, end_index),
            "paragraphStyle": paragraph_style,
            "fields": ",".join(paragraph_style.keys()),
        }
    }


def create_text_style_request(start_index: int, end_index: int, text_style: dict[str, Any]) -> dict[str, Any]:
    """Build an updateTextStyle request; the fields mask follows the style keys."""
    return {
        "updateTextStyle": {
            "range": index_range(start_index, end_index),
            "textStyle": text_style,
            "fields": ",".join(text_style.keys()),
        }
    }


def create_bullet_list_request(start_index: int, end_index: int, ordered: bool = False) -> dict[str, Any]:
    return {
        "createParagraphBullets": {
            "range": index_range(start_index, end_index),
            "bulletPreset": BULLET_PRESET_ORDERED if ordered else BULLET_PRESET_UNORDERED,
        }
    }


def create_insert_table_request(index: int, rows: int, columns: int) -> dict[str, Any]:
    return {
        "insertTable": {
            "location": {"index": index},
            "rows": rows,
            "columns": columns,
        }
    }


def create_insert_image_request(index: int, uri: str, width_pt: float, height_pt: float) -> dict[str, Any]:
    return {
        "insertInlineImage": {
            "location": {"index": index},
            "uri": uri,
            "objectSize": {"width": pt(width_pt), "height": pt(height_pt)},
        }
    }


def code_text_style() -> dict[str, Any]:
    return {
        "weightedFontFamily": {"fontFamily": CODE_FONT_FAMILY, "weight": 400},
        "backgroundColor": {"color": {"rgbColor": CODE_BACKGROUND_COLOR}},
    }


def blockquote_paragraph_style(nesting_level: int = 1) -> dict[str, Any]:
    margin_pt = BLOCKQUOTE_INDENT_PT * nesting_level
    return {
        "indentStart": pt(margin_pt),
        "indentFirstLine": pt(margin_pt),
        "borderLeft": {
            "color": {"color": {"rgbColor": BLOCKQUOTE_BORDER_COLOR}},
            "width": pt(BLOCKQUOTE_BORDER_WIDTH_PT),
            "padding": pt(BLOCKQUOTE_BORDER_PADDING_PT),
            "dashStyle": "SOLID",
        },
    }


def horizontal_rule_paragraph_style() -> dict[str, Any]:
    return {
        "borderBottom": {
            "color": {"color": {"rgbColor": HR_BORDER_COLOR}},
            "width": pt(HR_BORDER_WIDTH_PT),
            "dashStyle": "SOLID",
            "padding": pt(HR_PADDING_BELOW_PT),
        },
    }
