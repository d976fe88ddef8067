"""
Changes to class files and dependency archives, as seen by the watcher.

A raw file system event is translated into the index notifications it
stands for: a move is a removal of the old artifact followed by an
addition of the new one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from ici.core.models import FileKind


class FileEventType(Enum):
    """Types of file system events."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


class ArtifactChange(Enum):
    """Index notification for one artifact."""

    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


_CHANGE_FOR = {
    FileEventType.CREATED: ArtifactChange.ADDED,
    FileEventType.MODIFIED: ArtifactChange.CHANGED,
    FileEventType.DELETED: ArtifactChange.REMOVED,
}


@dataclass
class FileEvent:
    """
    A class file or archive that appeared, changed, vanished or moved.

    Attributes:
        event_type: What the file system reported
        file_path: The artifact after the event (for MOVED, the destination)
        old_path: Source of a move when it was itself an indexable artifact
        observed_at: When the watcher saw the event
    """

    event_type: FileEventType
    file_path: Path
    old_path: Path | None = None
    observed_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.file_path = Path(self.file_path)
        if self.old_path is not None:
            self.old_path = Path(self.old_path)

    @property
    def kind(self) -> FileKind:
        return FileKind.for_path(self.file_path)

    def changes(self) -> list[tuple[ArtifactChange, Path]]:
        """The index notifications for this event, in the order to apply them."""
        if self.event_type != FileEventType.MOVED:
            return [(_CHANGE_FOR[self.event_type], self.file_path)]
        changes = []
        if self.old_path is not None:
            changes.append((ArtifactChange.REMOVED, self.old_path))
        changes.append((ArtifactChange.ADDED, self.file_path))
        return changes
