"""Sync Apple Notes to a git repository as Markdown files."""

__version__ = "0.1.0"
