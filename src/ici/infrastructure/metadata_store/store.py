"""
Symbol Metadata Store implementation.

SQLite-based relational storage for file checks and symbol records.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Optional

from ici.core.models import FileKind, FqnSymbol, TrackedFile

from .models import MetadataStoreError, StoreStats, WriteConflict
from .queries import MetadataQueryExecutor
from .schema import initialize_schema, migrate_schema

logger = logging.getLogger(__name__)


def _symbol_from_row(row: sqlite3.Row) -> FqnSymbol:
    return FqnSymbol(
        container_uri=row["container_uri"],
        entry_path=row["entry_path"],
        fqn=row["fqn"],
        descriptor=row["descriptor"] or None,
        internal=row["internal"] or None,
        source_uri=row["source_uri"],
        line=row["line"],
    )


def _file_from_row(row: sqlite3.Row) -> TrackedFile:
    return TrackedFile(
        uri=row["uri"],
        path=Path(row["path"]),
        kind=FileKind(row["kind"]),
        change_token=row["change_token"],
    )


class SymbolMetadataStore:
    """
    SQLite-based symbol metadata storage.

    Tracks the change token of every indexed file together with its
    symbols. Shared by the refresh engine and the backlog queue, so every
    operation is serialized on a connection lock.
    """

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._query: Optional[MetadataQueryExecutor] = None
        self._initialized = False
        self._closed = False
        self._lock = threading.RLock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._closed:
            raise MetadataStoreError(f"Metadata store is closed: {self._db_path}")
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA busy_timeout=5000;")
            self._query = MetadataQueryExecutor(self._conn)
        return self._conn

    def initialize(self) -> None:
        """Initialize the database schema."""
        with self._lock:
            if self._initialized:
                return
            conn = self._get_connection()
            try:
                initialize_schema(conn)
                migrate_schema(conn)
                self._initialized = True
                logger.info(f"Initialized metadata store: {self._db_path}")
            except sqlite3.Error as e:
                raise MetadataStoreError(f"Failed to initialize schema: {e}") from e

    def _ensure_query(self) -> MetadataQueryExecutor:
        """Ensure query executor is available."""
        self.initialize()
        assert self._query is not None
        return self._query

    # ─────────────────────────────────────────────────────────────────
    # File Operations
    # ─────────────────────────────────────────────────────────────────

    def known_files(self) -> List[TrackedFile]:
        """All files currently recorded, with their stored change tokens."""
        with self._lock:
            try:
                return [_file_from_row(row) for row in self._ensure_query().get_all_files()]
            except sqlite3.Error as e:
                raise MetadataStoreError(f"Failed to list known files: {e}") from e

    def get_file(self, uri: str) -> Optional[TrackedFile]:
        with self._lock:
            try:
                row = self._ensure_query().get_file(uri)
            except sqlite3.Error as e:
                raise MetadataStoreError(f"Failed to get file: {e}") from e
        return _file_from_row(row) if row is not None else None

    def out_of_date(self, file: TrackedFile) -> bool:
        """True unless the file is recorded with its current change token."""
        known = self.get_file(file.uri)
        if known is None:
            return True
        return known.change_token != file.current_token()

    def remove_files(self, files: Iterable[TrackedFile]) -> int:
        """
        Remove files and all their symbols in one transaction.

        Files that are not recorded are ignored. Returns the number of
        file records deleted.
        """
        uris = list(dict.fromkeys(f.uri for f in files))
        if not uris:
            return 0
        with self._lock:
            conn = self._get_connection()
            try:
                deleted = self._ensure_query().delete_files(uris)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise MetadataStoreError(f"Failed to remove files: {e}") from e
        logger.debug(f"Removed {deleted} of {len(uris)} files from metadata store")
        return deleted

    def persist(self, file: TrackedFile, symbols: List[FqnSymbol]) -> Optional[WriteConflict]:
        """
        Record a file check and its symbols in one transaction.

        Symbols already recorded for another file (the same class shipped in
        two archives) are skipped; the file check and the remaining symbols
        are still committed, so the file is not out of date afterwards. A
        file that is already recorded is left unchanged.

        Returns:
            None on success, or a WriteConflict describing what the
            uniqueness constraints rejected

        Raises:
            MetadataStoreError: If the store cannot be written for any other reason
        """
        if file.change_token is None:
            raise MetadataStoreError(f"Cannot persist {file.uri} without a change token")

        # a symbol repeated within one file (multi-release archives) is stored once
        unique: dict[tuple, FqnSymbol] = {}
        for s in symbols:
            unique.setdefault((s.fqn, s.descriptor or "", s.internal or ""), s)
        rows = [
            (
                s.container_uri, s.entry_path, s.fqn,
                s.descriptor or "", s.internal or "",
                s.source_uri, s.line,
            )
            for s in unique.values()
        ]
        with self._lock:
            conn = self._get_connection()
            try:
                query = self._ensure_query()
                file_id = query.insert_file(
                    file.uri, str(file.path), file.kind.value, file.change_token
                )
                inserted = query.insert_symbols(file_id, rows)
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                return WriteConflict(file_uri=file.uri, symbol_count=len(rows), error=str(e))
            except sqlite3.Error as e:
                conn.rollback()
                raise MetadataStoreError(f"Failed to persist {file.uri}: {e}") from e

        if inserted < len(rows):
            return WriteConflict(
                file_uri=file.uri,
                symbol_count=len(rows) - inserted,
                error="symbols already recorded by another file",
            )
        return None

    # ─────────────────────────────────────────────────────────────────
    # Symbol Lookups
    # ─────────────────────────────────────────────────────────────────

    def find(self, fqn: str) -> Optional[FqnSymbol]:
        """Exact lookup of a single FQN."""
        with self._lock:
            try:
                row = self._ensure_query().find_symbol(fqn)
            except sqlite3.Error as e:
                raise MetadataStoreError(f"Failed to find symbol: {e}") from e
        return _symbol_from_row(row) if row is not None else None

    def find_many(self, fqns: List[str]) -> List[FqnSymbol]:
        """
        Bulk lookup preserving the order of the requested FQNs.

        One symbol per FQN; FQNs that are not recorded are dropped.
        """
        wanted = list(dict.fromkeys(fqns))
        if not wanted:
            return []
        with self._lock:
            try:
                rows = self._ensure_query().find_symbols(wanted)
            except sqlite3.Error as e:
                raise MetadataStoreError(f"Failed to find symbols: {e}") from e

        by_fqn: dict[str, FqnSymbol] = {}
        for row in rows:
            by_fqn.setdefault(row["fqn"], _symbol_from_row(row))
        return [by_fqn[fqn] for fqn in wanted if fqn in by_fqn]

    # ─────────────────────────────────────────────────────────────────
    # Statistics
    # ─────────────────────────────────────────────────────────────────

    def get_stats(self) -> StoreStats:
        with self._lock:
            try:
                query = self._ensure_query()
                files = query.get_file_counts()
                kinds = query.get_symbol_kind_breakdown()
            except sqlite3.Error as e:
                raise MetadataStoreError(f"Failed to get stats: {e}") from e
        return StoreStats(
            total_files=files["total_files"],
            total_archives=files["total_archives"],
            total_symbols=sum(kinds.values()),
            symbols_by_kind=kinds,
        )

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    def clear_all(self) -> None:
        """Clear all data from the store."""
        with self._lock:
            conn = self._get_connection()
            try:
                self._ensure_query().clear_all()
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise MetadataStoreError(f"Failed to clear data: {e}") from e

    def close(self) -> None:
        """Close the database connection. The store cannot be used afterwards."""
        with self._lock:
            self._closed = True
            if self._conn:
                self._conn.close()
                self._conn = None
                self._query = None
                self._initialized = False

    shutdown = close


def create_metadata_store(db_path: Path | str) -> SymbolMetadataStore:
    """Factory function to create a metadata store."""
    return SymbolMetadataStore(db_path)
