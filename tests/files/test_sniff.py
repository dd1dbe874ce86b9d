"""Tests for signature-based content type detection."""

import pytest

from dendrite.files.sniff import HTML_UTF8, TEXT_UTF8, detect_content_type


class TestDetectContentType:
    @pytest.mark.parametrize(
        "data,expected",
        [
            (b"", TEXT_UTF8),
            (b"hello world\n", TEXT_UTF8),
            (b"<!DOCTYPE html><html></html>", HTML_UTF8),
            (b"  \n<HtMl>", HTML_UTF8),
            (b"<p>para</p>", HTML_UTF8),
            (b"<!-- comment -->", HTML_UTF8),
            (b"\n<?xml version='1.0'?>", "text/xml; charset=utf-8"),
            (b"%PDF-1.7\n", "application/pdf"),
            (b"%!PS-Adobe-3.0", "application/postscript"),
            (b"\xef\xbb\xbfbom text", TEXT_UTF8),
            (b"\xfe\xff\x00h", "text/plain; charset=utf-16be"),
            (b"GIF89a\x01\x00", "image/gif"),
            (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
            (b"\xff\xd8\xff\xe0", "image/jpeg"),
            (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/wave"),
            (b"ID3\x03\x00", "audio/mpeg"),
            (b"OggS\x00\x02", "application/ogg"),
            (b"\x1f\x8b\x08\x00", "application/x-gzip"),
            (b"PK\x03\x04\x14\x00", "application/zip"),
            (b"\x00asm\x01\x00\x00\x00", "application/wasm"),
            (b"wOF2\x00\x01", "font/woff2"),
        ],
    )
    def test_signatures(self, data, expected):
        assert detect_content_type(data) == expected

    def test_html_tag_needs_terminator(self):
        """"<br" must be followed by a space or ">" to count as HTML."""
        assert detect_content_type(b"<brand new day") == TEXT_UTF8

    def test_mp4(self):
        data = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp41isom"
        assert detect_content_type(data) == "video/mp4"

    def test_binary_falls_back(self):
        assert detect_content_type(b"\x00\x01\x02\x03binary") == "application/octet-stream"

    def test_only_first_512_bytes_count(self):
        data = b"a" * 512 + b"\x00\x01"
        assert detect_content_type(data) == TEXT_UTF8
