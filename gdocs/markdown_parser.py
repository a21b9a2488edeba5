"""
Markdown to Google Docs Converter

This module provides the `MarkdownToDocsConverter` class that translates Markdown
into either Google Docs API `batchUpdate` requests or a local document tree for
`.docx` export. Both outputs come from the same pipeline:

    markdown -> MarkdownTokenizer -> BlockEmitter -> PositionalSink | TreeSink

Example:
    >>> converter = MarkdownToDocsConverter()
    >>> requests = converter.convert("# Hello World\\n\\nThis is **bold** text.")
    >>> # requests contains insertText + updateParagraphStyle + updateTextStyle

See Also:
    - `gdocs/emitter.py` for the cursor and spacing rules
    - `gdocs/sinks.py` for the exact request shapes
    - `gdocs/writing.py` for sending the output to Google Docs / Drive
"""

from __future__ import annotations

import logging

from core.config import ConverterConfig, get_config
from core.utils import strip_code_fence
from gdocs.document_tree import Document
from gdocs.docx_export import render_docx
from gdocs.emitter import BlockEmitter, EmitterState
from gdocs.sinks import ImageUriResolver, PositionalSink, TreeSink
from gdocs.tokens import MarkdownTokenizer, Token

logger = logging.getLogger(__name__)


class MarkdownToDocsConverter:
    """
    Converts Markdown text into Google Docs API requests or a document tree.

    The converter itself holds no per-conversion state: every call builds a
    fresh sink and `EmitterState`, so one instance can serve concurrent
    requests and converting the same input twice yields identical output.

    Args:
        config: Spacing threshold and image width settings; the process-wide
            configuration when omitted.
        image_uri_resolver: Optional callback returning a fetchable URI for an
            embedded image. Without it, embedded images are left out of the
            positional output.
    """

    def __init__(
        self,
        config: ConverterConfig | None = None,
        image_uri_resolver: ImageUriResolver | None = None,
    ) -> None:
        self.config = config or get_config()
        self.image_uri_resolver = image_uri_resolver
        self.tokenizer = MarkdownTokenizer()

    def tokenize(self, markdown_text: str) -> list[Token]:
        """Strip a wrapping code fence and tokenize into block tokens."""
        return self.tokenizer.tokenize(strip_code_fence(markdown_text))

    def convert(self, markdown_text: str, start_index: int = 1) -> list[dict]:
        """
        Convert markdown text to a list of Google Docs API requests.

        Args:
            markdown_text: The Markdown string to convert.
            start_index: Document index to start inserting at (default: 1, start of doc).

        Returns:
            List of request dictionaries for `documents.batchUpdate`, with indices
            that already account for every earlier insertion in the list.
        """
        if not markdown_text:
            return []

        tokens = self.tokenize(markdown_text)
        sink = PositionalSink(image_uri_resolver=self.image_uri_resolver)
        state = self._emitter(sink).emit(tokens, EmitterState(current_index=start_index))

        requests = sink.result()
        logger.info(
            f"Converted markdown ({len(markdown_text)} chars, {len(tokens)} blocks) "
            f"to {len(requests)} requests ending at index {state.current_index}"
        )
        return requests

    def convert_to_tree(self, markdown_text: str) -> Document:
        """Convert markdown text to a document tree."""
        sink = TreeSink()
        if markdown_text:
            tokens = self.tokenize(markdown_text)
            self._emitter(sink).emit(tokens)
            logger.info(f"Converted markdown ({len(tokens)} blocks) to {len(sink.document.body.children)} nodes")
        return sink.result()

    def convert_to_docx(self, markdown_text: str) -> bytes:
        """Convert markdown text straight to `.docx` bytes."""
        return render_docx(self.convert_to_tree(markdown_text))

    def _emitter(self, sink: PositionalSink | TreeSink) -> BlockEmitter:
        return BlockEmitter(
            sink,
            spacing_threshold=self.config.spacing_threshold,
            image_max_width=self.config.image_max_width,
        )
