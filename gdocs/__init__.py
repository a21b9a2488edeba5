"""
Google Docs Conversion Package

This package converts Markdown into Google Docs API requests or `.docx` files
and sends the result to Google Docs / Drive.
"""

from gdocs.docx_export import render_docx
from gdocs.emitter import BlockEmitter, EmitterState
from gdocs.markdown_parser import MarkdownToDocsConverter
from gdocs.sinks import PositionalSink, TreeSink
from gdocs.writing import create_doc_from_markdown, upload_markdown_as_docx

__all__ = [
    "MarkdownToDocsConverter",
    "BlockEmitter",
    "EmitterState",
    "PositionalSink",
    "TreeSink",
    "render_docx",
    "create_doc_from_markdown",
    "upload_markdown_as_docx",
]
