"""
Dendrite Files: Content Sniffing.

Signature-based content type detection over the leading bytes of a file,
following the table of the WHATWG MIME Sniffing standard. Only the first
512 bytes are ever considered.

Example:
    >>> detect_content_type(b"%PDF-1.7")
    'application/pdf'
    >>> detect_content_type(b"hello")
    'text/plain; charset=utf-8'
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from dendrite.core.constants import MIME_FALLBACK, Limits

TEXT_UTF8 = "text/plain; charset=utf-8"
HTML_UTF8 = "text/html; charset=utf-8"

_WHITESPACE = b"\t\n\x0c\r "


def _is_tag_terminator(b: int) -> bool:
    return b in (0x20, 0x3E)  # " " or ">"


def _is_binary(b: int) -> bool:
    return b <= 0x08 or b == 0x0B or 0x0E <= b <= 0x1A or 0x1C <= b <= 0x1F


class Signature:
    """Base class: return a content type on match, otherwise None."""

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class ExactSignature(Signature):
    """Data starts with a fixed byte prefix."""

    prefix: bytes
    content_type: str

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if data.startswith(self.prefix):
            return self.content_type
        return None


@dataclass(frozen=True)
class MaskedSignature(Signature):
    """Data ANDed with a mask equals a pattern."""

    mask: bytes
    pattern: bytes
    content_type: str
    skip_whitespace: bool = False

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if self.skip_whitespace:
            data = data[first_non_ws:]
        if len(self.pattern) != len(self.mask) or len(data) < len(self.pattern):
            return None
        for mask_byte, pattern_byte, data_byte in zip(self.mask, self.pattern, data):
            if data_byte & mask_byte != pattern_byte:
                return None
        return self.content_type


@dataclass(frozen=True)
class HtmlSignature(Signature):
    """Case-insensitive HTML tag followed by a space or ">"."""

    tag: bytes

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(self.tag) + 1:
            return None
        for i, expected in enumerate(self.tag):
            actual = data[i]
            if ord("A") <= expected <= ord("Z"):
                actual &= 0xDF
            if actual != expected:
                return None
        if not _is_tag_terminator(data[len(self.tag)]):
            return None
        return HTML_UTF8


class Mp4Signature(Signature):
    """ISO base media file with an ``mp4`` brand in its ftyp box."""

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if len(data) < 12:
            return None
        box_size = int.from_bytes(data[:4], "big")
        if len(data) < box_size or box_size % 4 != 0:
            return None
        if data[4:8] != b"ftyp":
            return None
        for start in range(8, box_size, 4):
            if start == 12:
                # Minor version, not a brand.
                continue
            if data[start : start + 3] == b"mp4":
                return "video/mp4"
        return None


class TextSignature(Signature):
    """Plain text: no binary control bytes after leading whitespace."""

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        for b in data[first_non_ws:]:
            if _is_binary(b):
                return None
        return TEXT_UTF8


_RIFF_MASK = b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff"

# Order matters: the first match wins and text must stay last.
SIGNATURES: Sequence[Signature] = (
    HtmlSignature(b"<!DOCTYPE HTML"),
    HtmlSignature(b"<HTML"),
    HtmlSignature(b"<HEAD"),
    HtmlSignature(b"<SCRIPT"),
    HtmlSignature(b"<IFRAME"),
    HtmlSignature(b"<H1"),
    HtmlSignature(b"<DIV"),
    HtmlSignature(b"<FONT"),
    HtmlSignature(b"<TABLE"),
    HtmlSignature(b"<A"),
    HtmlSignature(b"<STYLE"),
    HtmlSignature(b"<TITLE"),
    HtmlSignature(b"<B"),
    HtmlSignature(b"<BODY"),
    HtmlSignature(b"<BR"),
    HtmlSignature(b"<P"),
    HtmlSignature(b"<!--"),
    MaskedSignature(b"\xff" * 5, b"<?xml", "text/xml; charset=utf-8", skip_whitespace=True),
    ExactSignature(b"%PDF-", "application/pdf"),
    ExactSignature(b"%!PS-Adobe-", "application/postscript"),
    # Byte order marks
    MaskedSignature(b"\xff\xff\x00\x00", b"\xfe\xff\x00\x00", "text/plain; charset=utf-16be"),
    MaskedSignature(b"\xff\xff\x00\x00", b"\xff\xfe\x00\x00", "text/plain; charset=utf-16le"),
    MaskedSignature(b"\xff\xff\xff\x00", b"\xef\xbb\xbf\x00", TEXT_UTF8),
    # Images
    ExactSignature(b"\x00\x00\x01\x00", "image/x-icon"),
    ExactSignature(b"\x00\x00\x02\x00", "image/x-icon"),
    ExactSignature(b"BM", "image/bmp"),
    ExactSignature(b"GIF87a", "image/gif"),
    ExactSignature(b"GIF89a", "image/gif"),
    MaskedSignature(_RIFF_MASK + b"\xff\xff", b"RIFF\x00\x00\x00\x00WEBPVP", "image/webp"),
    ExactSignature(b"\x89PNG\r\n\x1a\n", "image/png"),
    ExactSignature(b"\xff\xd8\xff", "image/jpeg"),
    # Audio and video
    MaskedSignature(_RIFF_MASK, b"FORM\x00\x00\x00\x00AIFF", "audio/aiff"),
    MaskedSignature(b"\xff\xff\xff", b"ID3", "audio/mpeg"),
    MaskedSignature(b"\xff" * 5, b"OggS\x00", "application/ogg"),
    MaskedSignature(b"\xff" * 8, b"MThd\x00\x00\x00\x06", "audio/midi"),
    MaskedSignature(_RIFF_MASK, b"RIFF\x00\x00\x00\x00AVI ", "video/avi"),
    MaskedSignature(_RIFF_MASK, b"RIFF\x00\x00\x00\x00WAVE", "audio/wave"),
    Mp4Signature(),
    ExactSignature(b"\x1a\x45\xdf\xa3", "video/webm"),
    # Fonts
    MaskedSignature(b"\x00" * 34 + b"\xff\xff", b"\x00" * 34 + b"LP", "application/vnd.ms-fontobject"),
    ExactSignature(b"\x00\x01\x00\x00", "font/ttf"),
    ExactSignature(b"OTTO", "font/otf"),
    ExactSignature(b"ttcf", "font/collection"),
    ExactSignature(b"wOFF", "font/woff"),
    ExactSignature(b"wOF2", "font/woff2"),
    # Archives
    ExactSignature(b"\x1f\x8b\x08", "application/x-gzip"),
    ExactSignature(b"PK\x03\x04", "application/zip"),
    ExactSignature(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    ExactSignature(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    ExactSignature(b"\x00asm", "application/wasm"),
    TextSignature(),
)


def detect_content_type(data: bytes) -> str:
    """
    Determine the content type of ``data``.

    Args:
        data: Leading bytes of a file; anything past 512 bytes is ignored

    Returns:
        A MIME type, "application/octet-stream" if nothing matched
    """
    data = data[: Limits.SNIFF_LENGTH]

    first_non_ws = 0
    while first_non_ws < len(data) and data[first_non_ws] in _WHITESPACE:
        first_non_ws += 1

    for signature in SIGNATURES:
        content_type = signature.match(data, first_non_ws)
        if content_type:
            return content_type
    return MIME_FALLBACK
