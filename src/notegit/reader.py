"""Read note rows out of a NoteStore snapshot."""

import logging
import sqlite3
from pathlib import Path
from typing import Iterator

from .exceptions import DatabaseError
from .models import NoteRecord

logger = logging.getLogger(__name__)

NOTES_QUERY = """
    SELECT
      Z.Z_PK AS key,
      _FOLDER.ZTITLE2 AS folder,
      NOTEDATA.ZDATA AS data,
      Z.ZCREATIONDATE1 AS date,
      Z.ZTITLE1 AS title
    FROM ZICCLOUDSYNCINGOBJECT AS Z
    INNER JOIN ZICCLOUDSYNCINGOBJECT AS _FOLDER
      ON Z.ZFOLDER = _FOLDER.Z_PK
    INNER JOIN ZICNOTEDATA AS NOTEDATA
      ON Z.ZNOTEDATA = NOTEDATA.Z_PK
"""


def connect_readonly(db_path: Path) -> sqlite3.Connection:
    """Open a SQLite file in read-only mode."""
    db_path = Path(db_path)
    if not db_path.is_file():
        raise DatabaseError(f"Database not found: {db_path}")
    try:
        # as_uri() percent-encodes "?", "#" and "%" in the path
        return sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise DatabaseError(f"Could not open {db_path}: {e}", cause=e) from e


def read_notes(db_path: Path) -> Iterator[NoteRecord]:
    """Yield one NoteRecord per note, in whatever order SQLite returns them.

    The connection is closed when the iterator is exhausted, fails, or is
    closed early by the consumer.
    """
    conn = connect_readonly(db_path)
    try:
        try:
            cursor = conn.execute(NOTES_QUERY)
        except sqlite3.Error as e:
            raise DatabaseError(f"Notes query failed on {db_path}: {e}", cause=e) from e

        while True:
            try:
                row = cursor.fetchone()
            except sqlite3.Error as e:
                raise DatabaseError(f"Reading notes failed: {e}", cause=e) from e
            if row is None:
                break

            key, folder, data, date, title = row
            if data is None:
                logger.debug("Note %s has no body, skipping", key)
                continue

            yield NoteRecord(
                key=int(key),
                folder=folder or "Notes",
                raw_payload=bytes(data),
                creation_time=float(date or 0),
                title=title or "Untitled",
            )
    finally:
        conn.close()
