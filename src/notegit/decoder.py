"""Decode a note body into content tokens.

A note body is a gzip-compressed protobuf message. Only two byte sequences
around the text field are known to be stable across versions, so instead of
parsing the message we cut out the bytes between them. Inside that region,
a small set of brace-delimited formatting groups is recognised:

    {\\b text}            bold
    {\\i text}            italic
    {\\strike text}       strikethrough
    {\\fsN text}          heading, when it spans a whole line
    {\\field{\\*\\fldinst{HYPERLINK "url"}}{\\fldrslt{text}}}   link

Lines starting with a bullet or ``N.`` become list items. Any other
``{\\...}`` group is dropped; such groups carry formatting we cannot
reconstruct, and occasionally text along with it.
"""

import logging
import re
import unicodedata
import zlib
from dataclasses import dataclass

from .exceptions import LockedOrCorruptPayload
from .models import (
    Bold,
    ContentToken,
    Heading,
    Hyperlink,
    Italic,
    ListItem,
    PlainText,
    Strikethrough,
)

logger = logging.getLogger(__name__)

START_MARKER = b"\x08\x00\x10\x00\x1a"
TEXT_FIELD_TAG = 0x12
END_MARKER = b"\x04\x08\x00\x10\x00\x10\x00\x1a\x04\x08\x00"

OBJECT_REPLACEMENT = "\ufffc"

_BULLET_LINE = re.compile(r"^([ \t]*)(?:[\u2022\u25e6\u25aa*-]|\\bullet)[ \t]+(.*)$")
_NUMBERED_LINE = re.compile(r"^([ \t]*)(\d+)[.)][ \t]+(.*)$")
_CONTROL_WORD = re.compile(r"\\([a-zA-Z*]+)(-?\d+)? ?")
_HYPERLINK_URL = re.compile(r'HYPERLINK\s+"([^"]*)"')


@dataclass(frozen=True)
class ContentRegion:
    """Bytes holding the note text, and whether framing markers were found."""

    data: bytes
    framed: bool


def decompress_payload(raw: bytes) -> bytes:
    """Inflate a gzip (or zlib) note body.

    Raises LockedOrCorruptPayload when the bytes are not a valid stream,
    which is what password-protected notes look like.
    """
    try:
        return zlib.decompress(raw, zlib.MAX_WBITS | 32)
    except (zlib.error, TypeError) as e:
        raise LockedOrCorruptPayload(f"Cannot decompress note body: {e}") from e


def _skip_varint(data: bytes, pos: int) -> int:
    while pos < len(data) and data[pos] & 0x80:
        pos += 1
    return pos + 1


def extract_content_region(data: bytes) -> ContentRegion:
    """Cut the note text out of a decompressed body.

    Without a start marker the body is returned whole, unframed. Without an
    end marker the text runs to the end of the buffer.
    """
    start = data.find(START_MARKER)
    if start == -1:
        return ContentRegion(data, framed=False)

    tag = data.find(bytes([TEXT_FIELD_TAG]), start + 1)
    if tag == -1:
        return ContentRegion(data, framed=False)

    # The tag is followed by the field length as a varint.
    content_start = _skip_varint(data, tag + 1)
    end = data.find(END_MARKER, content_start)
    if end == -1:
        return ContentRegion(data[content_start:], framed=True)
    return ContentRegion(data[content_start:end], framed=True)


def strip_control_chars(text: str) -> str:
    """Drop non-printable control characters, keeping newlines and tabs."""
    text = text.replace("\r\n", "\n").replace("\u2028", "\n")
    return "".join(
        c for c in text
        if c in "\n\t"
        or (unicodedata.category(c) != "Cc" and c != OBJECT_REPLACEMENT)
    )


def heading_level(font_size: int) -> int:
    """Map a font size to a heading level: larger text, lower level."""
    return max(1, min(6, (48 - font_size) // 4))


def _match_brace(text: str, start: int) -> int:
    """Index of the brace closing the group opened at text[start], or -1."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _hyperlink(body: str) -> ContentToken | None:
    url_match = _HYPERLINK_URL.search(body)
    label = ""
    result_at = body.find("{\\fldrslt")
    if result_at != -1:
        result_end = _match_brace(body, result_at)
        if result_end != -1:
            inner = body[result_at + len("{\\fldrslt"):result_end].strip()
            # Plain grouping braces around the label
            if (
                inner.startswith("{")
                and not inner.startswith("{\\")
                and _match_brace(inner, 0) == len(inner) - 1
            ):
                inner = inner[1:-1]
            label = flatten(inner).strip()

    if url_match is None:
        return PlainText(label) if label else None
    url = url_match.group(1)
    return Hyperlink(display_text=label or url, url=url)


def _group_token(group: str) -> ContentToken | None:
    """Turn the inside of one ``{\\...}`` group into a token, or None to drop it."""
    word_match = _CONTROL_WORD.match(group)
    if word_match is None:
        return None
    word = word_match.group(1)
    rest = group[word_match.end():]

    if word == "field":
        return _hyperlink(rest)
    if word == "b":
        return Bold(flatten(rest))
    if word == "i":
        return Italic(flatten(rest))
    if word == "strike":
        return Strikethrough(flatten(rest))
    if word == "fs":
        # Size change inside a line; keep the text, lose the size.
        return PlainText(flatten(rest))
    return None


def scan_inline(text: str) -> list[ContentToken]:
    """Split one line of text into inline tokens."""
    tokens: list[ContentToken] = []
    plain_start = 0
    pos = 0

    while True:
        pos = text.find("{\\", pos)
        if pos == -1:
            break
        end = _match_brace(text, pos)
        if end == -1:
            break

        if pos > plain_start:
            tokens.append(PlainText(text[plain_start:pos]))
        token = _group_token(text[pos + 1:end])
        if token is not None and _token_text(token):
            tokens.append(token)
        pos = plain_start = end + 1

    if plain_start < len(text):
        tokens.append(PlainText(text[plain_start:]))
    return tokens


def _token_text(token: ContentToken) -> str:
    if isinstance(token, Hyperlink):
        return token.display_text
    return token.text


def flatten(text: str) -> str:
    """Reduce formatted text to its visible characters."""
    return "".join(_token_text(t) for t in scan_inline(text))


def _heading(line: str) -> Heading | None:
    if not line.startswith("{\\fs") or _match_brace(line, 0) != len(line) - 1:
        return None
    word_match = _CONTROL_WORD.match(line, 1)
    if word_match is None or word_match.group(1) != "fs" or not word_match.group(2):
        return None
    text = flatten(line[word_match.end():-1]).strip()
    if not text:
        return None
    return Heading(level=heading_level(int(word_match.group(2))), text=text)


def _tokenize_line(line: str) -> list[ContentToken]:
    stripped = line.rstrip()
    heading = _heading(stripped.lstrip())
    if heading is not None:
        return [heading]

    numbered = _NUMBERED_LINE.match(stripped)
    if numbered:
        indent, index, rest = numbered.groups()
        item = ListItem(ordered=True, index=int(index), text=flatten(rest))
        return [PlainText(indent), item] if indent else [item]

    bullet = _BULLET_LINE.match(stripped)
    if bullet:
        indent, rest = bullet.groups()
        item = ListItem(ordered=False, index=None, text=flatten(rest))
        return [PlainText(indent), item] if indent else [item]

    return scan_inline(line)


def tokenize(text: str) -> list[ContentToken]:
    """Turn the text region of a note into content tokens."""
    tokens: list[ContentToken] = []
    lines = strip_control_chars(text).split("\n")
    for i, line in enumerate(lines):
        if i:
            tokens.append(PlainText("\n"))
        tokens.extend(_tokenize_line(line))
    return tokens


def decode_payload(raw: bytes) -> list[ContentToken]:
    """Decompress a note body and return its content tokens.

    Raises LockedOrCorruptPayload if the body cannot be decompressed.
    """
    data = decompress_payload(raw)
    region = extract_content_region(data)
    text = region.data.decode("utf-8", errors="replace")

    if not region.framed:
        logger.debug("No framing markers found, treating body as plain text")
        return [PlainText(text)]

    return tokenize(text)
