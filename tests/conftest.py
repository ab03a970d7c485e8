"""Shared pytest fixtures for the notegit test suite.

Provides payload builders that mimic the Notes body format (gzip around a
protobuf frame) and a builder for a small NoteStore-shaped SQLite file.
"""

import gzip
import sqlite3
from pathlib import Path

import pytest

from notegit.config import Config
from notegit.decoder import END_MARKER, START_MARKER

# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def frame_text(text: str) -> bytes:
    """Wrap text in the start/end markers the way a note body stores it."""
    body = text.encode("utf-8")
    return (
        b"\x0a\x00"  # leading document fields
        + START_MARKER
        + b"\x12"
        + _varint(len(body))
        + body
        + END_MARKER
        + b"\x10\x00"
    )


@pytest.fixture
def framed_payload():
    """Return a function building a gzip-compressed, framed note body."""

    def _build(text: str) -> bytes:
        return gzip.compress(frame_text(text))

    return _build


@pytest.fixture
def plain_payload():
    """Return a function building a gzip-compressed body with no framing."""

    def _build(text: str) -> bytes:
        return gzip.compress(text.encode("utf-8"))

    return _build


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

SCHEMA = """
CREATE TABLE ZICCLOUDSYNCINGOBJECT (
    Z_PK INTEGER PRIMARY KEY,
    ZTITLE1 TEXT,
    ZTITLE2 TEXT,
    ZFOLDER INTEGER,
    ZNOTEDATA INTEGER,
    ZCREATIONDATE1 REAL
);
CREATE TABLE ZICNOTEDATA (
    Z_PK INTEGER PRIMARY KEY,
    ZDATA BLOB
);
"""


@pytest.fixture
def notes_db(tmp_path):
    """Return a function that writes a NoteStore-like database.

    Each note is a dict with ``key``, ``title``, ``folder``, ``data`` and
    ``date`` entries. Returns the database path.
    """

    def _build(notes: list[dict], path: Path | None = None) -> Path:
        path = path or tmp_path / "source" / "NoteStore.sqlite"
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(path)
        conn.executescript(SCHEMA)
        folder_ids: dict[str, int] = {}
        for i, note in enumerate(notes):
            folder = note.get("folder", "Notes")
            if folder not in folder_ids:
                folder_ids[folder] = 10_000 + len(folder_ids)
                conn.execute(
                    "INSERT INTO ZICCLOUDSYNCINGOBJECT (Z_PK, ZTITLE2) VALUES (?, ?)",
                    (folder_ids[folder], folder),
                )
            data_pk = 20_000 + i
            conn.execute(
                "INSERT INTO ZICNOTEDATA (Z_PK, ZDATA) VALUES (?, ?)",
                (data_pk, note.get("data")),
            )
            conn.execute(
                "INSERT INTO ZICCLOUDSYNCINGOBJECT "
                "(Z_PK, ZTITLE1, ZFOLDER, ZNOTEDATA, ZCREATIONDATE1) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    note["key"],
                    note.get("title", "Untitled"),
                    folder_ids[folder],
                    data_pk,
                    note.get("date", 0),
                ),
            )
        conn.commit()
        conn.close()
        return path

    return _build


@pytest.fixture
def config(tmp_path):
    """A Config pointing at paths under tmp_path, with no retry delay."""
    return Config(
        repo_path=tmp_path / "repo",
        notes_db_path=tmp_path / "source" / "NoteStore.sqlite",
        config_file=tmp_path / "notegit.json",
        snapshot_delay=0,
    )
