"""
Embedded Image Extraction and Dimension Sniffing

`extract_images` pulls ``data:image/<fmt>;base64,<payload>`` URIs (bare, or
wrapped in ``![alt](...)``) out of block text, leaving one space per image.

`image_dimensions` reads just enough of a JPEG/PNG/GIF/BMP header to recover
the intrinsic pixel size, and scales it to a maximum width. It never raises:
anything it cannot read resolves to a 4:3 box at the maximum width.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from core.errors import ImageDecodeError

logger = logging.getLogger(__name__)

FALLBACK_ASPECT_RATIO = 0.75  # height / width

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
GIF_SIGNATURES = (b"GIF87a", b"GIF89a")
BMP_SIGNATURE = b"BM"
JPEG_SOF_MARKERS = (b"\xff\xc0", b"\xff\xc2")  # baseline, then progressive

_DATA_URI_RE = re.compile(
    r"(?P<wrapper>!\[[^\]]*\]\(\s*)?"
    r"data:image/(?P<fmt>jpeg|jpg|png|gif|bmp|svg\+xml|svg);base64,"
    r"(?P<payload>[A-Za-z0-9+/]+={0,2})"
    r"(?(wrapper)\s*\))",
    re.IGNORECASE,
)


class ImageEncoding(str, Enum):
    JPG = "jpg"
    PNG = "png"
    GIF = "gif"
    BMP = "bmp"
    SVG = "svg"

    @classmethod
    def from_name(cls, name: str) -> ImageEncoding:
        """Normalize a data-URI subtype; unknown subtypes become PNG."""
        normalized = name.strip().lower()
        if normalized == "jpeg":
            return cls.JPG
        if normalized == "svg+xml":
            return cls.SVG
        try:
            return cls(normalized)
        except ValueError:
            return cls.PNG

    @property
    def mime_type(self) -> str:
        if self is ImageEncoding.JPG:
            return "image/jpeg"
        if self is ImageEncoding.SVG:
            return "image/svg+xml"
        return f"image/{self.value}"


@dataclass(frozen=True)
class ImageDescriptor:
    payload: bytes
    encoding: ImageEncoding
    position: int  # offset of the placeholder space in the extracted text


@dataclass
class ExtractedText:
    text: str
    images: list[ImageDescriptor] = field(default_factory=list)


class ImageSize(NamedTuple):
    width: int
    height: float


def decode_payload(payload: str, encoding: ImageEncoding) -> bytes:
    """Decode a base64 payload, raising ImageDecodeError on malformed input."""
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(encoding.value, str(e)) from e
    if not data:
        raise ImageDecodeError(encoding.value, "empty payload")
    return data


def extract_images(text: str) -> ExtractedText:
    """
    Remove embedded data-URI images from text.

    Each match is replaced by a single space. Images whose payload fails to
    decode are dropped (logged) but still leave their placeholder space, so
    raw and clean forms of the same block stay aligned.

    Args:
        text: Raw or clean block text.

    Returns:
        The text with images removed and the decoded images in text order.
    """
    if "data:image/" not in text.lower():
        return ExtractedText(text=text)

    pieces: list[str] = []
    images: list[ImageDescriptor] = []
    last_end = 0
    out_length = 0
    for match in _DATA_URI_RE.finditer(text):
        before = text[last_end : match.start()]
        pieces.append(before)
        out_length += len(before)

        encoding = ImageEncoding.from_name(match.group("fmt"))
        try:
            payload = decode_payload(match.group("payload"), encoding)
        except ImageDecodeError as e:
            logger.warning(f"Dropping embedded image at offset {match.start()}: {e}")
        else:
            images.append(ImageDescriptor(payload=payload, encoding=encoding, position=out_length))
            logger.debug(f"Extracted {encoding.value} image ({len(payload)} bytes) at offset {out_length}")

        pieces.append(" ")
        out_length += 1
        last_end = match.end()

    pieces.append(text[last_end:])
    return ExtractedText(text="".join(pieces), images=images)


def _read(fmt: str, data: bytes, offset: int) -> int:
    return struct.unpack_from(fmt, data, offset)[0]


def _jpeg_size(data: bytes) -> tuple[int, int]:
    for marker in JPEG_SOF_MARKERS:
        index = data.find(marker)
        if index != -1 and index + 9 <= len(data):
            return _read(">H", data, index + 7), _read(">H", data, index + 5)
    return 0, 0


def _png_size(data: bytes) -> tuple[int, int]:
    if len(data) < 24 or not data.startswith(PNG_SIGNATURE):
        return 0, 0
    return _read(">I", data, 16), _read(">I", data, 20)


def _gif_size(data: bytes) -> tuple[int, int]:
    if len(data) < 10 or not data.startswith(GIF_SIGNATURES):
        return 0, 0
    return _read("<H", data, 6), _read("<H", data, 8)


def _bmp_size(data: bytes) -> tuple[int, int]:
    if len(data) < 26 or not data.startswith(BMP_SIGNATURE):
        return 0, 0
    # Negative height marks a top-down bitmap
    return _read("<i", data, 18), abs(_read("<i", data, 22))


_SNIFFERS = {
    ImageEncoding.JPG: _jpeg_size,
    ImageEncoding.PNG: _png_size,
    ImageEncoding.GIF: _gif_size,
    ImageEncoding.BMP: _bmp_size,
}


def intrinsic_size(payload: bytes, encoding: ImageEncoding) -> tuple[int, int]:
    """Return the (width, height) stored in the image header, or (0, 0)."""
    sniffer = _SNIFFERS.get(encoding)
    if sniffer is None:
        return 0, 0
    try:
        width, height = sniffer(payload)
    except struct.error:
        return 0, 0
    return max(0, width), max(0, height)


def image_dimensions(payload: bytes, encoding: ImageEncoding, max_width: int) -> ImageSize:
    """
    Compute the rendered size of an image.

    Args:
        payload: Raw image bytes.
        encoding: Declared encoding of the bytes.
        max_width: Maximum rendered width in pixels.

    Returns:
        The intrinsic size scaled down to `max_width` (never up), or a
        `max_width` x `max_width * 0.75` box when the header is unreadable.
        SVG is never sniffed and always gets the fallback box.
    """
    width, height = intrinsic_size(payload, encoding)
    if width == 0 or height == 0:
        logger.debug(f"No dimensions for {encoding.value} image, using fallback box")
        return ImageSize(max_width, max_width * FALLBACK_ASPECT_RATIO)

    scaled_width = min(width, max_width)
    return ImageSize(scaled_width, round(scaled_width * height / width))
