"""
Infrastructure Layer - Symbol stores and file watching.
"""

from ici.infrastructure.fakes import FakeFileWatcher
from ici.infrastructure.file_watcher import (
    FileWatcher,
    FileWatcherInterface,
)
from ici.infrastructure.index_store import (
    IndexHit,
    IndexStoreError,
    SymbolIndexStore,
    create_index_store,
)
from ici.infrastructure.metadata_store import (
    MetadataStoreError,
    StoreStats,
    SymbolMetadataStore,
    WriteConflict,
    create_metadata_store,
)

__all__ = [
    # Index store
    "SymbolIndexStore",
    "IndexHit",
    "IndexStoreError",
    "create_index_store",
    # Metadata store
    "SymbolMetadataStore",
    "StoreStats",
    "WriteConflict",
    "MetadataStoreError",
    "create_metadata_store",
    # File watcher
    "FileWatcherInterface",
    "FileWatcher",
    "FakeFileWatcher",
]
