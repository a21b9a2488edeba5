"""
Inline Style Resolver

Finds inline markup (bold, italic, code, strikethrough, links) in the raw text of
a block and expresses each match as a `StyleSpan` in clean-text coordinates.

The mapping is a two-pass algorithm:

1. Scan `raw` once per pattern, collecting matches with their raw start offset,
   opening delimiter length, inner text length and total delimiter count.
2. Translate both ends of each match's inner text into clean coordinates by
   removing every delimiter character, of any match, that lies before them.

Markup nested inside a link (``[**b**](url)``) resolves exactly, since the
enclosing link only contributes its ``[``. Each pattern excludes its own
delimiter character from the inner text, so ``***both***`` and similar doubly
nested emphasis resolve to spans that fall outside the clean text and are
discarded.

Example:
    >>> resolve_styles("Hello **world**!", "Hello world!")
    [StyleSpan(start=6, length=5, kind=<StyleKind.BOLD: 'bold'>, url=None)]
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class StyleKind(str, Enum):
    BOLD = "bold"
    ITALIC = "italic"
    CODE = "code"
    STRIKETHROUGH = "strikethrough"
    LINK = "link"


@dataclass(frozen=True)
class StyleSpan:
    """A contiguous run of clean text carrying one inline attribute."""

    start: int
    length: int
    kind: StyleKind
    url: str | None = None

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass(frozen=True)
class _RawMatch:
    index: int
    opening: int
    inner_length: int
    stripped: int
    kind: StyleKind
    url: str | None = None

    @property
    def inner_start(self) -> int:
        return self.index + self.opening

    @property
    def inner_end(self) -> int:
        return self.inner_start + self.inner_length

    @property
    def raw_end(self) -> int:
        return self.index + self.inner_length + self.stripped


# (kind, pattern) pairs; group 1 is the inner text, group 2 the link target
STYLE_PATTERNS: list[tuple[StyleKind, re.Pattern[str]]] = [
    (StyleKind.BOLD, re.compile(r"\*\*([^*]+)\*\*")),
    (StyleKind.BOLD, re.compile(r"__([^_]+)__")),
    (StyleKind.ITALIC, re.compile(r"(?<!\*)\*([^*]+)\*(?!\*)")),
    (StyleKind.ITALIC, re.compile(r"(?<![\w_])_([^_]+)_(?![\w_])")),
    (StyleKind.CODE, re.compile(r"`([^`]+)`")),
    (StyleKind.STRIKETHROUGH, re.compile(r"~~([^~]+)~~")),
    (StyleKind.LINK, re.compile(r"(?<!!)\[([^\]]+)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")),
]


def _literal_range(match: _RawMatch) -> tuple[int, int] | None:
    """Raw range whose characters are never markup: code span bodies and link targets."""
    if match.kind is StyleKind.CODE:
        return match.inner_start, match.raw_end
    elif match.kind is StyleKind.LINK:
        return match.inner_end, match.raw_end
    return None


def find_raw_matches(raw: str) -> list[_RawMatch]:
    """Collect every pattern's matches in `raw`, ordered by raw start offset."""
    matches: list[_RawMatch] = []
    for kind, pattern in STYLE_PATTERNS:
        for match in pattern.finditer(raw):
            inner = match.group(1)
            matches.append(
                _RawMatch(
                    index=match.start(),
                    opening=match.start(1) - match.start(),
                    inner_length=len(inner),
                    stripped=len(match.group(0)) - len(inner),
                    kind=kind,
                    url=match.group(2) if kind is StyleKind.LINK else None,
                )
            )

    literal_ranges = [r for r in (_literal_range(m) for m in matches) if r]
    if literal_ranges:
        matches = [
            m
            for m in matches
            if m.kind is StyleKind.CODE or not any(start <= m.index < end for start, end in literal_ranges)
        ]

    matches.sort(key=lambda m: m.index)
    return matches


def clean_position(raw_index: int, matches: list[_RawMatch]) -> int:
    """
    Map a raw offset to clean coordinates.

    Every delimiter character lying before `raw_index` is removed. A match that
    encloses `raw_index` therefore contributes only its opening delimiter.
    """
    position = raw_index
    for match in matches:
        position -= max(0, min(raw_index, match.inner_start) - match.index)
        position -= max(0, min(raw_index, match.raw_end) - match.inner_end)
    return max(0, position)


def resolve_styles(raw: str, clean: str) -> list[StyleSpan]:
    """
    Resolve inline markup in `raw` to style spans over `clean`.

    Args:
        raw: Block text with markdown delimiters retained.
        clean: The same text with delimiters removed.

    Returns:
        Spans ordered by clean start offset. Spans that would end past
        `len(clean)` are discarded rather than truncated.
    """
    if raw == clean:
        return []

    matches = find_raw_matches(raw)
    spans: list[StyleSpan] = []
    for match in matches:
        start = clean_position(match.inner_start, matches)
        end = clean_position(match.inner_end, matches)
        if end <= start or end > len(clean):
            logger.debug(
                f"Discarding {match.kind.value} span at raw {match.index}: "
                f"clean [{start}, {end}) outside length {len(clean)}"
            )
            continue
        spans.append(StyleSpan(start=start, length=end - start, kind=match.kind, url=match.url))

    spans.sort(key=lambda s: s.start)
    return spans
