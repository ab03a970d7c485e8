"""Commit and push the exported notes with git."""

import logging
import subprocess
from pathlib import Path

from .exceptions import SyncError

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "Auto-sync notes"


def _git(repo_path: Path, *args: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            ["git", *args],
            cwd=repo_path,
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise SyncError(f"git {args[0]} failed: {stderr or e}", stderr=stderr) from e
    except FileNotFoundError as e:
        raise SyncError(f"git not available or repository missing: {e}") from e


def sync_repository(repo_path: Path, message: str = DEFAULT_COMMIT_MESSAGE) -> bool:
    """Stage, commit and push everything in repo_path.

    Returns False when there was nothing to commit. Raises SyncError on any
    git failure; the exported files are left as they are.
    """
    repo_path = Path(repo_path)

    _git(repo_path, "add", ".")

    status = _git(repo_path, "status", "--porcelain")
    if not status.stdout.strip():
        logger.info("No changes to commit in %s", repo_path)
        return False

    _git(repo_path, "commit", "-m", message)
    _git(repo_path, "push")
    logger.info("Notes synced to git: %s", repo_path)
    return True
