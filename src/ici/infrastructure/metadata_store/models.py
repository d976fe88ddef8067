"""
Data models for metadata store.
"""

from dataclasses import dataclass


class MetadataStoreError(Exception):
    """Base exception for metadata store errors."""
    pass


@dataclass
class WriteConflict:
    """A persist rejected by a uniqueness constraint."""
    file_uri: str
    symbol_count: int
    error: str

    def __str__(self) -> str:
        return (
            f"failed to insert {self.symbol_count} symbols for {self.file_uri}: "
            f"{self.error}"
        )


@dataclass
class StoreStats:
    """Row counts of the metadata store."""
    total_files: int
    total_archives: int
    total_symbols: int
    symbols_by_kind: dict[str, int]
