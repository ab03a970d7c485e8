"""Watch the Notes database and sync to git after it changes.

SyncService is a small state machine:

    IDLE --start--> WATCHING --change (debounced)--> EXPORTING --> WATCHING
    any state --stop--> IDLE (an export in progress finishes first)

Only one export runs at a time. Change events that arrive while an export
is running are dropped; the next change after it starts a new cycle.
"""

import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import Config, load_config
from .exceptions import ConfigError, NoteGitError, SyncError
from .exporter import export_notes
from .sync import sync_repository

logger = logging.getLogger(__name__)


class State(Enum):
    IDLE = "idle"
    WATCHING = "watching"
    EXPORTING = "exporting"


class DatabaseChangeHandler(FileSystemEventHandler):
    """Forward writes to the database file (or its WAL) to a callback."""

    def __init__(self, db_path: Path, callback: Callable[[], None]):
        super().__init__()
        self._names = {db_path.name, db_path.name + "-wal"}
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("modified", "created", "moved"):
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if any(os.path.basename(os.fsdecode(p)) in self._names for p in paths if p):
            logger.debug("Notes database changed: %s", event.src_path)
            self._callback()


class SyncService:
    """Debounced, single-flight export + git sync driven by file changes."""

    def __init__(
        self,
        config: Config,
        debounce: Optional[float] = None,
        exporter=export_notes,
        syncer=sync_repository,
        observer_factory=Observer,
    ):
        self.config = config
        self.debounce = config.debounce_seconds if debounce is None else debounce
        self._export = exporter
        self._sync = syncer
        self._observer_factory = observer_factory

        self._lock = threading.Lock()
        self._state = State.IDLE
        self._stop_requested = False
        self._observer = None
        self._timer: Optional[threading.Timer] = None
        self._idle = threading.Event()
        self._idle.set()

    @property
    def state(self) -> State:
        return self._state

    def start(self) -> bool:
        """Begin watching. Returns False if the service is already running."""
        with self._lock:
            if self._state is not State.IDLE:
                logger.info("Sync is already running")
                return False

            db_path = Path(self.config.notes_db_path)
            observer = self._observer_factory()
            observer.schedule(
                DatabaseChangeHandler(db_path, self.notify_change),
                str(db_path.parent),
                recursive=False,
            )
            observer.start()

            self._observer = observer
            self._stop_requested = False
            self._state = State.WATCHING
            self._idle.clear()

        logger.info("Watching %s for changes", db_path)
        return True

    def notify_change(self) -> None:
        """Restart the quiet-period timer after a change event."""
        with self._lock:
            if self._state is State.IDLE or self._stop_requested:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self.trigger)
            self._timer.daemon = True
            self._timer.start()

    def trigger(self) -> bool:
        """Run one export + sync cycle if the service is watching.

        Returns False when the cycle was refused (idle, or already exporting).
        """
        with self._lock:
            if self._state is not State.WATCHING:
                if self._state is State.EXPORTING:
                    logger.info("Export already in progress, ignoring change")
                return False
            self._state = State.EXPORTING
            self._timer = None

        try:
            self._run_cycle()
        finally:
            with self._lock:
                if self._stop_requested:
                    self._state = State.IDLE
                    self._idle.set()
                else:
                    self._state = State.WATCHING
        return True

    def _run_cycle(self) -> None:
        logger.info("Notes changed, syncing...")
        try:
            config = load_config(self.config.config_file)
            config.notes_db_path = self.config.notes_db_path
        except ConfigError as e:
            logger.error("Cannot sync without configuration: %s", e)
            return

        try:
            batch = self._export(config, replace_repo=True)
        except (NoteGitError, OSError) as e:
            logger.error("Export failed: %s", e)
            return
        if batch.failed:
            logger.warning("%d note(s) failed to export", len(batch.failed))

        try:
            self._sync(config.repo_path)
        except SyncError as e:
            logger.error("Error syncing to git: %s", e)
            return

        try:
            config.mark_synced()
        except OSError as e:
            logger.error("Could not record sync time: %s", e)
            return
        self.config = config

    def stop(self) -> bool:
        """Stop watching. Returns False if the service was not running.

        A running export is allowed to finish.
        """
        with self._lock:
            if self._state is State.IDLE:
                logger.info("Sync is not running")
                return False

            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            observer, self._observer = self._observer, None

            self._stop_requested = True
            if self._state is State.WATCHING:
                self._state = State.IDLE
                self._idle.set()

        if observer is not None:
            observer.stop()
            if observer.is_alive():
                observer.join()
        logger.info("Stopped watching for changes")
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the service is idle again."""
        return self._idle.wait(timeout)
