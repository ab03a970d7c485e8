"""Configuration loading and persistence.

The only state notegit keeps is a small JSON file recording the tracked
repository and the time of the last successful sync.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigError, ConfigMissing

logger = logging.getLogger(__name__)

DEFAULT_NOTES_DB_PATH = (
    Path.home() / "Library/Group Containers/group.com.apple.notes/NoteStore.sqlite"
)


def _default_config_file() -> Path:
    return Path(os.getenv("NOTEGIT_CONFIG", str(Path.home() / ".notegit.json")))


def _default_notes_db() -> Path:
    return Path(os.getenv("NOTES_DB_PATH", str(DEFAULT_NOTES_DB_PATH)))


@dataclass
class Config:
    """Application configuration."""

    repo_path: Path
    last_sync: Optional[str] = None
    notes_db_path: Path = field(default_factory=_default_notes_db)
    config_file: Path = field(default_factory=_default_config_file)
    debounce_seconds: float = 5.0
    snapshot_attempts: int = 3
    snapshot_delay: float = 2.0

    @property
    def pid_file(self) -> Path:
        return self.config_file.with_suffix(".pid")

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.repo_path.is_absolute():
            raise ConfigError(f"repoPath must be absolute: {self.repo_path}")
        if self.debounce_seconds < 0:
            raise ConfigError("NOTEGIT_DEBOUNCE cannot be negative.")
        if self.snapshot_attempts < 1:
            raise ConfigError("snapshot_attempts must be at least 1.")

    def to_dict(self) -> dict:
        return {"repoPath": str(self.repo_path), "lastSync": self.last_sync}

    def mark_synced(self, when: Optional[datetime] = None) -> None:
        """Record a successful sync and persist it."""
        when = when or datetime.now(timezone.utc)
        self.last_sync = when.isoformat()
        save_config(self)


def save_config(config: Config) -> None:
    """Write the config record to its JSON file."""
    config.config_file.parent.mkdir(parents=True, exist_ok=True)
    config.config_file.write_text(
        json.dumps(config.to_dict(), indent=2), encoding="utf-8"
    )
    logger.debug("Saved config to %s", config.config_file)


def setup_config(repo_path: str, config_file: Optional[Path] = None) -> Config:
    """Create (or overwrite) the config record for a repository path."""
    load_dotenv()
    config = Config(
        repo_path=Path(repo_path).expanduser().resolve(),
        last_sync=None,
        config_file=config_file or _default_config_file(),
    )
    config.validate()
    save_config(config)
    return config


def load_config(config_file: Optional[Path] = None) -> Config:
    """Load the config record and apply environment overrides.

    Raises ConfigMissing if setup has not been run.
    """
    load_dotenv()
    path = config_file or _default_config_file()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigMissing(
            f"No configuration at {path}. Run `notegit setup <repo-path>` first."
        ) from e
    except (OSError, ValueError) as e:
        raise ConfigMissing(f"Could not read configuration {path}: {e}") from e

    if not isinstance(data, dict) or not data.get("repoPath"):
        raise ConfigMissing(f"Configuration {path} has no repoPath.")

    try:
        debounce = float(os.getenv("NOTEGIT_DEBOUNCE", "5"))
    except ValueError as e:
        raise ConfigError(f"Invalid NOTEGIT_DEBOUNCE: {e}") from e

    config = Config(
        repo_path=Path(data["repoPath"]),
        last_sync=data.get("lastSync"),
        config_file=path,
        debounce_seconds=debounce,
    )
    config.validate()
    return config
