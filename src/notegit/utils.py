"""Utility functions for notegit."""

import re
from datetime import datetime, timezone

# Seconds between the Unix epoch and the Core Data epoch (2001-01-01 UTC)
CORE_DATA_EPOCH_OFFSET = 978307200

# Folder names the export root keeps for itself
RESERVED_FOLDERS = (".git",)


def sanitize_title(title: str) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore.

    The replacement is one-for-one, so "Q3/Q4: Plans?" becomes "Q3_Q4__Plans_".
    """
    return re.sub(r"[^A-Za-z0-9]", "_", title)


def sanitize_folder(name: str) -> str:
    """Make a folder display name safe to use as a single path component."""
    name = re.sub(r'[/\\\x00]', "_", name).strip()
    if name in ("", ".", ".."):
        return "Notes"
    if name.lower() in RESERVED_FOLDERS:
        return "_" + name.lstrip(".")
    return name


def note_filename(key: int, title: str) -> str:
    """Build the file name for a note: ``{key} - {sanitized title}.md``."""
    return f"{key} - {sanitize_title(title)}.md"


def to_unix_timestamp(core_data_seconds: float) -> float:
    """Convert seconds since 2001-01-01 UTC to a Unix timestamp."""
    return core_data_seconds + CORE_DATA_EPOCH_OFFSET


def to_datetime(core_data_seconds: float) -> datetime:
    """Convert seconds since 2001-01-01 UTC to an aware datetime."""
    return datetime.fromtimestamp(
        to_unix_timestamp(core_data_seconds), tz=timezone.utc
    )
