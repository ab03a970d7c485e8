"""Data models for notegit."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class NoteRecord:
    """One note row read from the snapshot."""

    key: int
    folder: str
    raw_payload: bytes
    creation_time: float  # seconds since 2001-01-01T00:00:00Z
    title: str


# Content tokens produced by the decoder and consumed by the renderer.


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class Bold:
    text: str


@dataclass(frozen=True)
class Italic:
    text: str


@dataclass(frozen=True)
class Strikethrough:
    text: str


@dataclass(frozen=True)
class Heading:
    level: int
    text: str

    def __post_init__(self):
        if not 1 <= self.level <= 6:
            raise ValueError(f"Heading level must be 1-6, got {self.level}")


@dataclass(frozen=True)
class ListItem:
    ordered: bool
    index: Optional[int]
    text: str


@dataclass(frozen=True)
class Hyperlink:
    display_text: str
    url: str


ContentToken = Union[
    PlainText, Bold, Italic, Strikethrough, Heading, ListItem, Hyperlink
]


@dataclass
class ExportedFile:
    """A note written to disk."""

    path: Path
    content: str
    mod_time: float  # Unix timestamp


@dataclass
class FailedNote:
    """A note that could not be exported."""

    key: int
    title: str
    error: str


@dataclass
class ExportBatch:
    """Result of one export run."""

    root: Path
    files: list[ExportedFile] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)  # locked / corrupt keys
    failed: list[FailedNote] = field(default_factory=list)
    promoted_to: Optional[Path] = None
