"""
Watch Service for automatic classfile monitoring.

Connects the file watcher to the search service change notifications.
Provides lifecycle management, statistics tracking, and error recovery.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ici.core.config import WatchConfig
from ici.core.file_events import ArtifactChange, FileEvent
from ici.core.project import ProjectModel
from ici.infrastructure.file_watcher import FileWatcherInterface
from ici.services.search_service import SearchService

logger = logging.getLogger(__name__)


@dataclass
class WatchStats:
    """
    Statistics for the watch service.

    Tracks events received, notifications dispatched per kind and error
    counts for monitoring and debugging.
    """

    started_at: datetime = field(default_factory=datetime.now)
    events_received: int = 0
    added: int = 0
    changed: int = 0
    removed: int = 0
    last_event_at: datetime | None = None
    errors: int = 0

    def to_dict(self) -> dict:
        """Serialize stats to dictionary for JSON reporting."""
        return {
            "started_at": self.started_at.isoformat(),
            "events_received": self.events_received,
            "added": self.added,
            "changed": self.changed,
            "removed": self.removed,
            "last_event_at": (
                self.last_event_at.isoformat() if self.last_event_at else None
            ),
            "errors": self.errors,
        }


class WatchServiceError(Exception):
    """Base exception for watch service errors."""

    pass


class PathValidationError(WatchServiceError):
    """Raised when none of the project paths can be watched."""

    pass


class WatchService:
    """
    File watching service that keeps the index current between refreshes.

    Watcher callbacks arrive on the watchdog thread and are handed to the
    event loop, where they become search service notifications.
    """

    def __init__(
        self,
        search_service: SearchService,
        file_watcher: FileWatcherInterface,
        watch_paths: list[Path],
        config: WatchConfig | None = None,
    ):
        """
        Initialize the watch service.

        Args:
            search_service: Receives added/changed/removed notifications
            file_watcher: File system watcher implementation
            watch_paths: Build output directories and dependency archives
            config: Watch configuration
        """
        self._search_service = search_service
        self._file_watcher = file_watcher
        self._watch_paths = [Path(p) for p in watch_paths]
        self._config = config or WatchConfig()
        self._stats = WatchStats()
        self._running = False
        self._event_loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def for_project(
        cls,
        search_service: SearchService,
        file_watcher: FileWatcherInterface,
        project: ProjectModel,
        config: WatchConfig | None = None,
    ) -> "WatchService":
        """Watch every target directory and dependency archive of a project."""
        return cls(
            search_service,
            file_watcher,
            [*project.target_dirs(), *project.all_jars()],
            config,
        )

    @property
    def config(self) -> WatchConfig:
        """Get the watch configuration."""
        return self._config

    async def start(self) -> None:
        """
        Start the watch service.

        Optionally refreshes the whole project first, then begins file
        system monitoring.

        Raises:
            PathValidationError: If none of the paths exist
            WatchServiceError: If the service is already running
        """
        if self._running:
            raise WatchServiceError("Watch service is already running")

        existing = [p for p in self._watch_paths if p.exists()]
        if not existing:
            raise PathValidationError(
                f"None of the {len(self._watch_paths)} project paths exist"
            )

        logger.info(
            f"Starting watch service for {len(existing)} paths",
            extra={"watch_paths": [str(p) for p in existing[:10]]},
        )

        self._event_loop = asyncio.get_running_loop()

        if self._config.refresh_on_start:
            result = await self._search_service.refresh()
            logger.info(
                f"Initial refresh removed {result.removed} and indexed {result.indexed} files"
            )

        self._stats = WatchStats()
        self._running = True
        self._file_watcher.start(existing, self._on_file_event_sync)

        logger.info("Watch service started")

    async def stop(self) -> None:
        """
        Stop the watch service.

        Waits for notifications already received to reach the index, then
        releases file system watchers.
        """
        if not self._running:
            logger.debug("Watch service is not running, nothing to stop")
            return

        logger.info("Stopping watch service...")
        self._file_watcher.stop()
        self._running = False
        await self._search_service.wait_idle()
        self._event_loop = None

        logger.info(
            "Watch service stopped",
            extra={"stats": self._stats.to_dict()},
        )

    def is_running(self) -> bool:
        """Check if the watch service is currently running."""
        return self._running

    def get_stats(self) -> WatchStats:
        """Get current watch statistics."""
        return self._stats

    def _on_file_event_sync(self, event: FileEvent) -> None:
        """
        Synchronous callback for file events from the watchdog thread.

        Schedules the handler on the event loop.
        """
        if self._event_loop is None or not self._running:
            return

        asyncio.run_coroutine_threadsafe(self._on_file_event(event), self._event_loop)

    async def _on_file_event(self, event: FileEvent) -> None:
        """
        Dispatch a file event as a search service notification.

        Args:
            event: The file event to handle
        """
        if not self._running:
            return

        self._stats.events_received += 1
        self._stats.last_event_at = datetime.now()

        logger.debug(
            "File change detected: %s - %s",
            event.event_type.value,
            event.file_path,
            extra={
                "event_type": event.event_type.value,
                "file_path": str(event.file_path),
                "artifact_kind": event.kind.value,
                "observed_at": event.observed_at.isoformat(),
            },
        )

        try:
            for change, path in event.changes():
                if change == ArtifactChange.ADDED:
                    self._search_service.classfile_added(path)
                    self._stats.added += 1
                elif change == ArtifactChange.CHANGED:
                    self._search_service.classfile_changed(path)
                    self._stats.changed += 1
                else:
                    self._search_service.classfile_removed(path)
                    self._stats.removed += 1
        except Exception as e:
            self._stats.errors += 1
            logger.error(
                "Error handling file event: %s",
                str(e),
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "event_type": event.event_type.value,
                    "file_path": str(event.file_path),
                    "errors_total": self._stats.errors,
                },
                exc_info=True,
            )
