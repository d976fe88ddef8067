"""
Shared write primitives over the index store and the metadata store.
"""

import logging
from typing import Iterable

from ici.core.models import FqnSymbol, TrackedFile
from ici.infrastructure.index_store import SymbolIndexStore
from ici.infrastructure.metadata_store import MetadataStoreError, SymbolMetadataStore
from ici.services.indexing_models import PersistOutcome

logger = logging.getLogger(__name__)


class IndexWriter:
    """
    Persists and deletes files in both stores.

    Both operations are safe to repeat. Store failures propagate to the
    caller; uniqueness conflicts do not.
    """

    def __init__(self, index_store: SymbolIndexStore, metadata_store: SymbolMetadataStore):
        self._index_store = index_store
        self._metadata_store = metadata_store

    def persist(self, file: TrackedFile, symbols: list[FqnSymbol]) -> PersistOutcome:
        """
        Write a file's check token and symbols, index first.

        A uniqueness violation in the metadata store is logged and reported
        as CONFLICT. It is not retried. Symbols that collide with another
        file are skipped and the rest of the file is still recorded, except
        when the file itself is already recorded, in which case nothing
        changes.
        """
        self._index_store.persist(file, symbols)
        try:
            conflict = self._metadata_store.persist(file, symbols)
        except MetadataStoreError:
            # keep the index from holding documents the metadata store lacks
            self._index_store.remove([file])
            raise
        if conflict is not None:
            logger.warning(
                f"Write conflict, {conflict}",
                extra={"file_uri": file.uri, "symbol_count": len(symbols)},
            )
            return PersistOutcome.CONFLICT
        return PersistOutcome.PERSISTED

    def delete(self, files: Iterable[TrackedFile]) -> None:
        """Remove files and all their symbols from both stores."""
        files = list(files)
        if not files:
            return
        self._index_store.remove(files)
        self._metadata_store.remove_files(files)
