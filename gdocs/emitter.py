"""
Block Emitter

Walks the block token stream, turns each token into emitted units and feeds
them to a sink at the current cursor position. The cursor lives in an explicit
`EmitterState` that is passed in and returned, so concurrent conversions never
share offsets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.errors import UnsupportedBlockError
from gdocs.images import extract_images, image_dimensions
from gdocs.inline_styles import StyleSpan, resolve_styles
from gdocs.sinks import (
    BaseSink,
    CellUnit,
    CodeUnit,
    EmittedUnit,
    HeadingUnit,
    ListItemUnit,
    ParagraphUnit,
    ResolvedImage,
    RuleUnit,
    SeparatorUnit,
    TableUnit,
)
from gdocs.tokens import (
    BlockquoteToken,
    CodeToken,
    HeadingToken,
    HrToken,
    ListToken,
    ParagraphToken,
    SpaceToken,
    TableCell,
    TableToken,
    Token,
    TokenType,
)

logger = logging.getLogger(__name__)

DEFAULT_SPACING_THRESHOLD = 2
DEFAULT_IMAGE_MAX_WIDTH = 400

_HEADING_QUOTES = "\"'“”"


@dataclass
class EmitterState:
    """Cursor and spacing state for one conversion."""

    current_index: int = 1
    last_token_type: TokenType | None = None
    consecutive_space_count: int = 0

    def advance(self, consumed: int) -> None:
        if consumed < 0:
            raise ValueError(f"Cursor cannot move backwards (consumed={consumed} at {self.current_index})")
        self.current_index += consumed


def strip_heading_quotes(text: str) -> str:
    """Remove one pair of quote characters wrapping a whole heading."""
    if len(text) >= 2 and text[0] in _HEADING_QUOTES and text[-1] in _HEADING_QUOTES:
        return text[1:-1]
    return text


class BlockEmitter:
    """
    Emits block tokens into a sink.

    Example:
        >>> from gdocs.sinks import PositionalSink
        >>> from gdocs.tokens import HeadingToken
        >>> sink = PositionalSink()
        >>> BlockEmitter(sink).emit([HeadingToken(text="Title", raw="Title", depth=1)]).current_index
        7
    """

    def __init__(
        self,
        sink: BaseSink,
        spacing_threshold: int = DEFAULT_SPACING_THRESHOLD,
        image_max_width: int = DEFAULT_IMAGE_MAX_WIDTH,
    ) -> None:
        if spacing_threshold < 1:
            raise ValueError("spacing_threshold must be at least 1")
        self.sink = sink
        self.spacing_threshold = spacing_threshold
        self.image_max_width = image_max_width

    def emit(self, tokens: list[Token], state: EmitterState | None = None) -> EmitterState:
        """
        Emit every token into the sink.

        Args:
            tokens: Block tokens in document order.
            state: Starting state; a fresh state at index 1 when omitted.

        Returns:
            The state after the last token.
        """
        state = state if state is not None else EmitterState()
        for token in tokens:
            self._emit_token(token, state)
        logger.debug(f"Emitted {len(tokens)} tokens, cursor at {state.current_index}")
        return state

    def _emit_token(self, token: Token, state: EmitterState) -> None:
        if isinstance(token, SpaceToken):
            self._track_space(token, state)
            return

        state.consecutive_space_count = 0

        if isinstance(token, HeadingToken):
            self._send(HeadingUnit(text=strip_heading_quotes(token.text), depth=token.depth), state)
        elif isinstance(token, ParagraphToken):
            self._send(self._paragraph_unit(token.raw, token.text), state)
        elif isinstance(token, ListToken):
            for i, item in enumerate(token.items):
                text, spans, images = self._resolve_inline(item.raw, item.text)
                self._send(
                    ListItemUnit(
                        text=text,
                        spans=spans,
                        images=images,
                        level=item.level,
                        ordered=item.ordered,
                        first=i == 0,
                    ),
                    state,
                )
        elif isinstance(token, BlockquoteToken):
            for inner in token.tokens:
                if isinstance(inner, ParagraphToken):
                    self._send(self._paragraph_unit(inner.raw, inner.text, quote_level=1), state)
                else:
                    logger.debug(f"Skipping {inner.type.value} inside blockquote")
        elif isinstance(token, CodeToken):
            self._send(CodeUnit(text=token.text, lang=token.lang), state)
        elif isinstance(token, HrToken):
            self._send(RuleUnit(), state)
        elif isinstance(token, TableToken):
            self._send(
                TableUnit(
                    header=tuple(self._cell_unit(cell) for cell in token.header),
                    rows=tuple(tuple(self._cell_unit(cell) for cell in row) for row in token.rows),
                ),
                state,
            )
        else:
            raise UnsupportedBlockError(token)

        state.last_token_type = token.type

    def _track_space(self, token: SpaceToken, state: EmitterState) -> None:
        if state.last_token_type is TokenType.SPACE or state.last_token_type is None:
            state.last_token_type = TokenType.SPACE
            return

        state.last_token_type = TokenType.SPACE
        state.consecutive_space_count += token.lines
        if state.consecutive_space_count >= self.spacing_threshold:
            logger.debug(f"{state.consecutive_space_count} blank line(s), adding separator")
            self._send(SeparatorUnit(), state)
            state.consecutive_space_count = 0

    def _send(self, unit: EmittedUnit, state: EmitterState) -> None:
        consumed = self.sink.emit(unit, state.current_index)
        state.advance(consumed)

    def _paragraph_unit(self, raw: str, clean: str, quote_level: int = 0) -> ParagraphUnit:
        text, spans, images = self._resolve_inline(raw, clean)
        return ParagraphUnit(text=text, spans=spans, images=images, quote_level=quote_level)

    def _cell_unit(self, cell: TableCell) -> CellUnit:
        return CellUnit(text=cell.text, spans=tuple(resolve_styles(cell.raw, cell.text)))

    def _resolve_inline(
        self, raw: str, clean: str
    ) -> tuple[str, tuple[StyleSpan, ...], tuple[ResolvedImage, ...]]:
        """Extract images from both text forms, then resolve spans on what remains."""
        extracted_raw = extract_images(raw)
        extracted_clean = extract_images(clean)
        spans = resolve_styles(extracted_raw.text, extracted_clean.text)
        images = tuple(
            ResolvedImage(
                image=image,
                size=image_dimensions(image.payload, image.encoding, self.image_max_width),
            )
            for image in extracted_clean.images
        )
        return extracted_clean.text, tuple(spans), images
