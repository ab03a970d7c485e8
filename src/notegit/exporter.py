"""Export pipeline: snapshot, read, decode, render, write."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .config import Config
from .decoder import decode_payload
from .exceptions import DatabaseError, LockedOrCorruptPayload, RecordWriteError
from .formatter import render_markdown
from .models import ExportBatch, FailedNote, NoteRecord
from .reader import read_notes
from .snapshot import acquire_snapshot
from .utils import to_datetime
from .writer import promote_staging, write_note

logger = logging.getLogger(__name__)


def export_record(root: Path, record: NoteRecord, batch: ExportBatch) -> None:
    """Decode, render and write a single note, recording the outcome in batch.

    Failures are confined to this note.
    """
    try:
        content = render_markdown(decode_payload(record.raw_payload))
    except LockedOrCorruptPayload:
        logger.info("Skipping encrypted/locked note: %s (%s)", record.key, record.title)
        batch.skipped.append(record.key)
        return
    except Exception as e:
        logger.exception("Error decoding note %s (%s)", record.key, record.title)
        batch.failed.append(FailedNote(record.key, record.title, str(e)))
        return

    try:
        exported = write_note(root, record, content)
    except RecordWriteError as e:
        logger.error("Error writing note %s (%s): %s", record.key, record.title, e)
        batch.failed.append(FailedNote(record.key, record.title, str(e)))
        return

    logger.debug(
        "Wrote note %s (created %s) to %s",
        record.key,
        to_datetime(record.creation_time).isoformat(),
        exported.path,
    )
    batch.files.append(exported)


def _export_from_snapshot(db_path: Path, staging: Path, batch: ExportBatch) -> None:
    seen: set[int] = set()
    records = read_notes(db_path)
    try:
        for record in records:
            # Z_PK is a primary key; a repeat means the snapshot is not what we think.
            if record.key in seen:
                raise DatabaseError(f"Duplicate note key {record.key} in snapshot")
            seen.add(record.key)
            export_record(staging, record, batch)
    finally:
        records.close()


def export_notes(
    config: Config,
    output_dir: Optional[Path] = None,
    replace_repo: bool = False,
    snapshot_dir: Optional[Path] = None,
) -> ExportBatch:
    """Export every note in the configured database to Markdown files.

    Notes are written to output_dir, or to a fresh temporary directory. With
    replace_repo, the result then replaces the tracked repository directory.

    Raises SnapshotError or DatabaseError when the run cannot proceed.
    """
    if replace_repo and output_dir is not None:
        raise ValueError("output_dir cannot be combined with replace_repo")

    created = output_dir is None
    if created:
        staging = Path(tempfile.mkdtemp(prefix="notes-export-"))
    else:
        staging = Path(output_dir)
        staging.mkdir(parents=True, exist_ok=True)
    logger.info("Exporting notes to %s", staging)

    batch = ExportBatch(root=staging)
    snapshot_dir = Path(snapshot_dir) if snapshot_dir else Path(tempfile.gettempdir())

    try:
        with acquire_snapshot(
            config.notes_db_path,
            snapshot_dir,
            attempts=config.snapshot_attempts,
            delay=config.snapshot_delay,
        ) as snapshot:
            _export_from_snapshot(snapshot.path, staging, batch)
    except Exception:
        if created:
            shutil.rmtree(staging, ignore_errors=True)
        raise

    logger.info(
        "Exported %d note(s), skipped %d locked, %d failed",
        len(batch.files),
        len(batch.skipped),
        len(batch.failed),
    )

    if replace_repo:
        try:
            batch.promoted_to = promote_staging(staging, config.repo_path)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

    return batch
