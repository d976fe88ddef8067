"""
Index Store module for the classfile indexer.

SQLite FTS5 full-text index over symbol names.
"""

from .models import IndexHit, IndexStoreError
from .schema import initialize_schema
from .store import SymbolIndexStore, build_prefix_query, create_index_store, tokenize_fqn

__all__ = [
    "SymbolIndexStore",
    "IndexHit",
    "IndexStoreError",
    "initialize_schema",
    "build_prefix_query",
    "tokenize_fqn",
    "create_index_store",
]
