"""
Indexing service data models.

Contains dataclasses for refresh results and write outcomes.
"""

from dataclasses import dataclass, field
from enum import Enum


class PersistOutcome(str, Enum):
    """Result of writing one file to both stores."""

    PERSISTED = "persisted"
    CONFLICT = "conflict"


@dataclass
class RefreshResult:
    """
    Result of a refresh.

    Counts are estimates: the project may change again while a refresh runs.
    """

    removed: int = 0
    indexed: int = 0
    failed_files: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def as_tuple(self) -> tuple[int, int]:
        return self.removed, self.indexed
