"""Tests for note body decompression, region extraction and tokenizing."""

import gzip
import zlib

import pytest

from notegit.decoder import (
    END_MARKER,
    START_MARKER,
    decode_payload,
    decompress_payload,
    extract_content_region,
    heading_level,
    strip_control_chars,
    tokenize,
)
from notegit.exceptions import LockedOrCorruptPayload
from notegit.models import (
    Bold,
    Heading,
    Hyperlink,
    Italic,
    ListItem,
    PlainText,
    Strikethrough,
)


class TestDecompressPayload:
    """Inflating note bodies."""

    def test_gzip(self):
        assert decompress_payload(gzip.compress(b"hello")) == b"hello"

    def test_zlib(self):
        assert decompress_payload(zlib.compress(b"hello")) == b"hello"

    def test_garbage_is_locked_or_corrupt(self):
        with pytest.raises(LockedOrCorruptPayload):
            decompress_payload(b"\x00\x01not gzip at all")

    def test_empty_is_locked_or_corrupt(self):
        with pytest.raises(LockedOrCorruptPayload):
            decompress_payload(b"")

    def test_truncated_is_locked_or_corrupt(self):
        data = gzip.compress(b"some longer text " * 20)
        with pytest.raises(LockedOrCorruptPayload):
            decompress_payload(data[: len(data) // 2])


class TestExtractContentRegion:
    """Marker-bounded extraction of the note text."""

    def test_no_start_marker_passes_through(self):
        region = extract_content_region(b"just text")
        assert region.framed is False
        assert region.data == b"just text"

    def test_start_marker_without_text_tag_passes_through(self):
        data = START_MARKER + b"abc"
        region = extract_content_region(data)
        assert region.framed is False
        assert region.data == data

    def test_bounded_by_both_markers(self):
        data = b"xx" + START_MARKER + b"\x12\x05hello" + END_MARKER + b"tail"
        region = extract_content_region(data)
        assert region.framed is True
        assert region.data == b"hello"

    def test_missing_end_marker_runs_to_end(self):
        data = START_MARKER + b"\x12\x05hello world"
        assert extract_content_region(data).data == b"hello world"

    def test_multi_byte_length_is_skipped(self):
        body = b"a" * 200
        # 200 as a varint is 0xC8 0x01
        data = START_MARKER + b"\x12\xc8\x01" + body + END_MARKER
        assert extract_content_region(data).data == body


class TestStripControlChars:
    def test_keeps_newlines_and_tabs(self):
        assert strip_control_chars("a\x00b\x07\nc\td\x1f") == "ab\nc\td"

    def test_drops_attachment_placeholder(self):
        assert strip_control_chars("see \ufffc here") == "see  here"

    def test_normalises_line_endings(self):
        assert strip_control_chars("a\r\nb\u2028c") == "a\nb\nc"


class TestHeadingLevel:
    """Font size to heading level mapping."""

    @pytest.mark.parametrize(
        "size, level",
        [(44, 1), (40, 2), (36, 3), (32, 4), (28, 5), (24, 6)],
    )
    def test_known_sizes(self, size, level):
        assert heading_level(size) == level

    def test_clamped(self):
        assert heading_level(200) == 1
        assert heading_level(48) == 1
        assert heading_level(2) == 6
        assert heading_level(-10) == 6

    def test_non_increasing_in_font_size(self):
        levels = [heading_level(size) for size in range(0, 100)]
        assert all(a >= b for a, b in zip(levels, levels[1:]))
        assert all(1 <= level <= 6 for level in levels)


class TestTokenize:
    """Recognising inline and line-level markup."""

    def test_plain_text(self):
        assert tokenize("hello world") == [PlainText("hello world")]

    def test_bold_then_text(self):
        assert tokenize("{\\b Hello} world") == [Bold("Hello"), PlainText(" world")]

    def test_italic_and_strike(self):
        tokens = tokenize("{\\i soft} and {\\strike gone}")
        assert tokens == [Italic("soft"), PlainText(" and "), Strikethrough("gone")]

    def test_heading_line(self):
        assert tokenize("{\\fs40 Plans}") == [Heading(2, "Plans")]

    def test_inline_font_size_keeps_text(self):
        assert tokenize("big {\\fs40 word} here") == [
            PlainText("big "),
            PlainText("word"),
            PlainText(" here"),
        ]

    def test_bullet_list(self):
        tokens = tokenize("\u2022 milk\n- eggs")
        assert tokens == [
            ListItem(False, None, "milk"),
            PlainText("\n"),
            ListItem(False, None, "eggs"),
        ]

    def test_numbered_list(self):
        tokens = tokenize("1. first\n2) second")
        assert tokens == [
            ListItem(True, 1, "first"),
            PlainText("\n"),
            ListItem(True, 2, "second"),
        ]

    def test_list_item_text_is_flattened(self):
        assert tokenize("- {\\b buy} milk") == [ListItem(False, None, "buy milk")]

    def test_indented_bullet(self):
        assert tokenize("  - nested") == [PlainText("  "), ListItem(False, None, "nested")]

    def test_hyperlink(self):
        text = '{\\field{\\*\\fldinst{HYPERLINK "https://example.com"}}{\\fldrslt{Example}}}'
        assert tokenize(text) == [Hyperlink("Example", "https://example.com")]

    def test_hyperlink_without_label_uses_url(self):
        text = '{\\field{\\*\\fldinst{HYPERLINK "https://example.com"}}}'
        assert tokenize(text) == [Hyperlink("https://example.com", "https://example.com")]

    def test_unknown_groups_are_dropped(self):
        assert tokenize("a{\\colortbl red;}b") == [PlainText("a"), PlainText("b")]

    def test_nested_unknown_group_is_dropped_whole(self):
        assert tokenize("x{\\*\\foo {\\bar y}}z") == [PlainText("x"), PlainText("z")]

    def test_unbalanced_brace_is_kept(self):
        assert tokenize("open {\\b never closed") == [PlainText("open {\\b never closed")]

    def test_control_chars_removed(self):
        assert tokenize("a\x01b") == [PlainText("ab")]


class TestDecodePayload:
    """Full decode of compressed bodies."""

    def test_framed_markup(self, framed_payload):
        tokens = decode_payload(framed_payload("{\\b Hello} world"))
        assert tokens == [Bold("Hello"), PlainText(" world")]

    def test_unframed_is_single_plain_token(self, plain_payload):
        text = "# Already\n\n**markdown** {\\b untouched}"
        assert decode_payload(plain_payload(text)) == [PlainText(text)]

    def test_invalid_utf8_is_replaced(self):
        data = gzip.compress(START_MARKER + b"\x12\x03a\xffb" + END_MARKER)
        assert decode_payload(data) == [PlainText("a\ufffdb")]

    def test_corrupt(self):
        with pytest.raises(LockedOrCorruptPayload):
            decode_payload(b"encrypted-bytes")
