"""Write rendered notes to the filesystem."""

import logging
import os
import shutil
import time
from pathlib import Path

from .exceptions import RecordWriteError
from .models import ExportedFile, NoteRecord
from .utils import note_filename, sanitize_folder, to_unix_timestamp

logger = logging.getLogger(__name__)

PRESERVED_ENTRIES = (".git",)


def note_path(root: Path, record: NoteRecord) -> Path:
    """Return ``{root}/{folder}/{key} - {sanitized title}.md`` for a note."""
    return Path(root) / sanitize_folder(record.folder) / note_filename(
        record.key, record.title
    )


def write_note(root: Path, record: NoteRecord, content: str) -> ExportedFile:
    """Write one note and stamp it with the note's creation time.

    Raises RecordWriteError if the file cannot be written.
    """
    path = note_path(root, record)
    mod_time = to_unix_timestamp(record.creation_time)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        os.utime(path, (mod_time, mod_time))
    except OSError as e:
        raise RecordWriteError(f"Failed to write {path}: {e}") from e

    return ExportedFile(path=path, content=content, mod_time=mod_time)


def promote_staging(staging: Path, destination: Path) -> Path:
    """Replace destination with the contents of staging.

    The old destination is renamed aside and staging moved into its place,
    so readers never see a half-written tree. The repository's .git directory
    is carried over into the new tree, and the old tree is deleted only once
    the new one is in place. If the move fails, the old tree is restored.

    Raises FileExistsError if staging already holds a preserved entry.
    """
    staging = Path(staging)
    destination = Path(destination)

    for name in PRESERVED_ENTRIES:
        if (staging / name).exists():
            raise FileExistsError(
                f"Refusing to replace {destination}: staging already has {name}"
            )

    backup = None
    if destination.exists():
        backup = destination.with_name(f".{destination.name}.old-{time.time_ns()}")
        destination.rename(backup)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staging), str(destination))
    except OSError:
        if backup is not None:
            if destination.exists():
                shutil.rmtree(destination, ignore_errors=True)
            backup.rename(destination)
        raise

    if backup is not None:
        for name in PRESERVED_ENTRIES:
            kept = backup / name
            if kept.exists():
                kept.rename(destination / name)
        try:
            shutil.rmtree(backup)
        except OSError as e:
            logger.warning("Could not remove previous tree %s: %s", backup, e)

    logger.info("Replaced %s with exported notes", destination)
    return destination
