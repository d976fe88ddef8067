"""
File watcher infrastructure component.

Provides file system monitoring using watchdog library with support for:
- Class files created, modified, deleted or moved below build output directories
- Dependency archives replaced or removed in place
- Callback integration from the watchdog observer thread
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ici.core.file_events import FileEvent, FileEventType
from ici.core.models import ARCHIVE_SUFFIXES, CLASSFILE_SUFFIX

logger = logging.getLogger(__name__)


class FileWatcherInterface(Protocol):
    """Protocol for file watcher implementations."""

    def start(self, paths: list[Path], callback: Callable[[FileEvent], None]) -> None:
        """
        Start watching directories and archive files.

        Args:
            paths: Build output directories (watched recursively) and archives
            callback: Function to call when file events occur
        """
        ...

    def stop(self) -> None:
        """Stop watching and release resources."""
        ...

    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        ...


class FileWatcher(FileWatcherInterface):
    """
    File system watcher implementation using watchdog.

    Directories are watched recursively for class files. Archives are
    watched through their parent directory, filtered to the exact file.
    """

    def __init__(self):
        self._observer: Observer | None = None
        self._callback: Callable[[FileEvent], None] | None = None
        self._lock = threading.Lock()

    def start(self, paths: list[Path], callback: Callable[[FileEvent], None]) -> None:
        """
        Start watching.

        Raises:
            RuntimeError: If watcher is already running
        """
        with self._lock:
            if self._observer is not None and self._observer.is_alive():
                raise RuntimeError("File watcher is already running")

            self._callback = callback
            observer = Observer()

            archives_by_dir: dict[Path, set[Path]] = {}
            watched = 0
            for path in (Path(p).resolve() for p in paths):
                if path.is_dir():
                    handler = _WatchdogEventHandler(self._handle_event)
                    observer.schedule(handler, str(path), recursive=True)
                    watched += 1
                elif path.suffix.lower() in ARCHIVE_SUFFIXES and path.parent.is_dir():
                    archives_by_dir.setdefault(path.parent, set()).add(path)
                else:
                    logger.debug(f"Not watching missing path: {path}")

            for directory, archives in archives_by_dir.items():
                handler = _WatchdogEventHandler(self._handle_event, only=archives)
                observer.schedule(handler, str(directory), recursive=False)
                watched += 1

            observer.start()
            self._observer = observer
            logger.info(f"Started watching {watched} locations")

    def stop(self) -> None:
        """Stop watching and release resources."""
        with self._lock:
            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=5.0)
                self._observer = None
                logger.info("Stopped watching")
            self._callback = None

    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        with self._lock:
            return self._observer is not None and self._observer.is_alive()

    def _handle_event(self, event: FileEvent) -> None:
        """Internal handler that forwards events to the callback."""
        if self._callback is not None:
            try:
                self._callback(event)
            except Exception as e:
                logger.error(f"Error in file event callback: {e}")


class _WatchdogEventHandler(FileSystemEventHandler):
    """
    Internal watchdog event handler.

    Converts watchdog events to FileEvent objects for class files and,
    when ``only`` is given, for those exact archive paths.
    """

    def __init__(
        self,
        callback: Callable[[FileEvent], None],
        only: set[Path] | None = None,
    ):
        super().__init__()
        self._callback = callback
        self._only = only

    def _should_process(self, path: Path) -> bool:
        if self._only is not None:
            return path in self._only
        return path.suffix == CLASSFILE_SUFFIX

    def _emit_event(
        self,
        event_type: FileEventType,
        file_path: Path,
        old_path: Path | None = None,
    ) -> None:
        event = FileEvent(
            event_type=event_type,
            file_path=file_path,
            old_path=old_path,
        )
        logger.debug(f"Emitting event: {event_type.value} - {file_path}")
        self._callback(event)

    def on_created(self, event: FileSystemEvent) -> None:
        if isinstance(event, DirCreatedEvent):
            return
        path = Path(event.src_path)
        if self._should_process(path):
            self._emit_event(FileEventType.CREATED, path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, DirModifiedEvent):
            return
        path = Path(event.src_path)
        if self._should_process(path):
            self._emit_event(FileEventType.MODIFIED, path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if isinstance(event, DirDeletedEvent):
            return
        path = Path(event.src_path)
        if self._should_process(path):
            self._emit_event(FileEventType.DELETED, path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if isinstance(event, DirMovedEvent):
            return

        src_path = Path(event.src_path)
        dest_path = Path(event.dest_path)
        src_valid = self._should_process(src_path)
        dest_valid = self._should_process(dest_path)

        if dest_valid:
            self._emit_event(
                FileEventType.MOVED,
                dest_path,
                old_path=src_path if src_valid else None,
            )
        elif src_valid:
            # moved out of sight, e.g. a compiler writing to a temp name
            self._emit_event(FileEventType.DELETED, src_path)
