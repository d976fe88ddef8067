"""
Fake implementations for testing.

Provides in-memory implementations of infrastructure interfaces
for use in unit and integration tests without external dependencies.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ici.core.file_events import FileEvent


class FakeFileWatcher:
    """
    Fake file watcher for testing.

    Allows manual triggering of file events without actual file system monitoring.
    Implements the same interface as FileWatcher for use in tests.
    """

    def __init__(self):
        self._callback: Callable[[FileEvent], None] | None = None
        self._watch_paths: list[Path] = []
        self._running = False
        self._events: list[FileEvent] = []

    @property
    def watch_paths(self) -> list[Path]:
        return list(self._watch_paths)

    def start(self, paths: list[Path], callback: Callable[[FileEvent], None]) -> None:
        """
        Start the fake watcher.

        Args:
            paths: Paths that would be watched
            callback: Function to call when events are triggered
        """
        if self._running:
            raise RuntimeError("File watcher is already running")

        self._watch_paths = [Path(p).resolve() for p in paths]
        self._callback = callback
        self._running = True

    def stop(self) -> None:
        """Stop the fake watcher."""
        self._running = False
        self._callback = None
        self._watch_paths = []

    def is_running(self) -> bool:
        """Check if the fake watcher is running."""
        return self._running

    def trigger_event(self, event: FileEvent) -> None:
        """
        Manually trigger a file event.

        This is the main testing interface - allows tests to simulate
        file system events without actual file operations.

        Args:
            event: The FileEvent to trigger
        """
        if not self._running:
            raise RuntimeError("File watcher is not running")

        self._events.append(event)
        if self._callback is not None:
            self._callback(event)

    def get_triggered_events(self) -> list[FileEvent]:
        """Get all events that have been triggered."""
        return list(self._events)

    def clear_events(self) -> None:
        """Clear the list of triggered events."""
        self._events.clear()
