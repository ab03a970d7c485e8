"""Copy-then-read access to a live SQLite database.

Notes keeps its database open and writes to it at any time. Reading it in
place risks lock contention and torn reads, so every export works on a
private, size-verified copy that is deleted afterwards.
"""

import logging
import shutil
import time
from pathlib import Path

from .exceptions import SnapshotError

logger = logging.getLogger(__name__)

SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")


def _sidecar(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


def remove_with_sidecars(path: Path) -> None:
    """Delete a database file and any WAL/shared-memory files next to it."""
    for candidate in (path, *(_sidecar(path, s) for s in SIDECAR_SUFFIXES)):
        try:
            candidate.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove %s: %s", candidate, e)


class Snapshot:
    """A verified copy of the source database.

    Use as a context manager; the copy and its sidecars are removed on exit.
    """

    def __init__(self, path: Path, source: Path):
        self.path = path
        self.source = source

    def cleanup(self) -> None:
        remove_with_sidecars(self.path)

    def __enter__(self) -> "Snapshot":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        return f"Snapshot({str(self.path)!r})"


def _retry(func, max_attempts: int = 3, delay: float = 2.0, on_failure=None):
    """Execute func, retrying with a fixed delay between attempts."""
    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            return func()
        except (OSError, SnapshotError) as e:
            last_error = e
            logger.warning(
                "Snapshot attempt %d/%d failed: %s", attempt, max_attempts, e
            )
            if on_failure is not None:
                on_failure()
            if attempt < max_attempts:
                time.sleep(delay)
    raise SnapshotError(
        f"Could not snapshot database after {max_attempts} attempts: {last_error}",
        cause=last_error,
        attempts=max_attempts,
    ) from last_error


def _copy_and_verify(source: Path, target: Path) -> None:
    shutil.copy2(source, target)

    expected = source.stat().st_size
    actual = target.stat().st_size
    if expected != actual:
        raise SnapshotError(
            f"Size mismatch copying {source.name}: expected {expected} bytes, got {actual}"
        )

    # Uncheckpointed writes live in the WAL; copy it so the snapshot is current.
    for suffix in ("-wal", "-shm"):
        side = _sidecar(source, suffix)
        if side.exists():
            shutil.copy2(side, _sidecar(target, suffix))


def snapshot_path(source: Path, dest_dir: Path) -> Path:
    """Return a unique path for a copy of source inside dest_dir."""
    return dest_dir / f"{source.stem}-{time.time_ns()}{source.suffix}"


def acquire_snapshot(
    source: Path,
    dest_dir: Path,
    attempts: int = 3,
    delay: float = 2.0,
) -> Snapshot:
    """Copy the database to dest_dir and verify the copy.

    Partial copies are removed between attempts. Raises SnapshotError with
    the last underlying error once all attempts are used.
    """
    source = Path(source)
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = snapshot_path(source, dest_dir)

    logger.debug("Copying %s to %s", source, target)
    _retry(
        lambda: _copy_and_verify(source, target),
        max_attempts=attempts,
        delay=delay,
        on_failure=lambda: remove_with_sidecars(target),
    )
    logger.info("Snapshot ready: %s", target)
    return Snapshot(target, source)
