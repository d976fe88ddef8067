"""
Metadata Store module for the classfile indexer.

SQLite-based storage for file checks and symbol records.
"""

from .models import MetadataStoreError, StoreStats, WriteConflict
from .queries import MetadataQueryExecutor
from .schema import initialize_schema, migrate_schema
from .store import SymbolMetadataStore, create_metadata_store

__all__ = [
    # Main classes
    "SymbolMetadataStore",
    "StoreStats",
    "WriteConflict",
    "MetadataStoreError",
    # Query executor
    "MetadataQueryExecutor",
    # Schema
    "initialize_schema",
    "migrate_schema",
    # Factory
    "create_metadata_store",
]
