"""
Symbol Index Store implementation.

SQLite FTS5 full-text index over tokenised fully qualified names. Writes
accumulate in an open transaction until commit() so that a whole refresh
can be flushed to disk at once.
"""

import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Optional

from ici.core.models import FqnSymbol, SymbolKind, TrackedFile

from .models import IndexHit, IndexStoreError
from .schema import initialize_schema

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[A-Za-z0-9_]+")
_CAMEL_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")

# Each query token is quoted, so only a bounded number are accepted
_MAX_QUERY_TOKENS = 50

# Candidate rows fetched per requested result, absorbs duplicate FQNs
_OVERFETCH = 4


def tokenize_fqn(fqn: str) -> str:
    """
    Index terms for an FQN: every segment plus its camel-case parts.

    ``org.example.HttpClient$Builder.getFoo`` yields
    ``org example HttpClient Http Client Builder getFoo get Foo``.
    """
    terms: list[str] = []
    for word in _WORD_RE.findall(fqn):
        terms.append(word)
        parts = _CAMEL_RE.findall(word)
        if len(parts) > 1:
            terms.extend(parts)
    return " ".join(terms)


def build_prefix_query(terms: Iterable[str]) -> str | None:
    """AND together a quoted prefix match for every word in the terms."""
    words = [w for term in terms for w in _WORD_RE.findall(term)]
    if not words:
        return None
    words = words[:_MAX_QUERY_TOKENS]
    return " AND ".join(f'"{w}"*' for w in words)


class SymbolIndexStore:
    """
    Full-text symbol index.

    Every operation is serialized on one connection, so uncommitted writes
    are visible to searches made through the same store.
    """

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._initialized = False
        self._closed = False
        self._lock = threading.RLock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        if self._closed:
            raise IndexStoreError(f"Index store is closed: {self._db_path}")
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA busy_timeout=5000;")
        return self._conn

    def initialize(self) -> None:
        with self._lock:
            if self._initialized:
                return
            try:
                initialize_schema(self._get_connection())
                self._initialized = True
                logger.info(f"Initialized index store: {self._db_path}")
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to initialize index: {e}") from e

    def _connection(self) -> sqlite3.Connection:
        self.initialize()
        assert self._conn is not None
        return self._conn

    # ─────────────────────────────────────────────────────────────────
    # Writes (uncommitted until commit())
    # ─────────────────────────────────────────────────────────────────

    def persist(self, file: TrackedFile, symbols: List[FqnSymbol]) -> None:
        """Replace the documents of a file with its current symbols."""
        rows = [
            (file.uri, s.fqn, s.kind.value, tokenize_fqn(s.fqn))
            for s in symbols
        ]
        with self._lock:
            conn = self._connection()
            try:
                conn.execute("DELETE FROM symbol_docs WHERE container_uri = ?", (file.uri,))
                conn.executemany(
                    "INSERT INTO symbol_docs (container_uri, fqn, kind, terms) VALUES (?, ?, ?, ?)",
                    rows,
                )
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to index {file.uri}: {e}") from e

    def remove(self, files: Iterable[TrackedFile]) -> int:
        """Remove all documents of the given files. Returns documents removed."""
        uris = [(uri,) for uri in dict.fromkeys(f.uri for f in files)]
        if not uris:
            return 0
        with self._lock:
            conn = self._connection()
            try:
                removed = 0
                for params in uris:
                    cursor = conn.execute(
                        "DELETE FROM symbol_docs WHERE container_uri = ?", params
                    )
                    removed += cursor.rowcount
                return removed
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to remove documents: {e}") from e

    def commit(self) -> None:
        with self._lock:
            if self._closed:
                raise IndexStoreError(f"Index store is closed: {self._db_path}")
            if self._conn is None:
                return
            try:
                self._conn.commit()
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to commit index: {e}") from e

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    def _search(self, terms: List[str], kinds: List[SymbolKind], max_results: int) -> List[IndexHit]:
        match = build_prefix_query(terms)
        if match is None or max_results <= 0:
            return []
        kind_values = [k.value for k in kinds]
        placeholders = ",".join("?" * len(kind_values))
        with self._lock:
            conn = self._connection()
            try:
                rows = conn.execute(
                    f"""
                    SELECT d.fqn, d.kind, bm25(symbol_docs_fts) AS score
                    FROM symbol_docs_fts
                    JOIN symbol_docs d ON d.id = symbol_docs_fts.rowid
                    WHERE symbol_docs_fts MATCH ? AND d.kind IN ({placeholders})
                    ORDER BY score ASC, length(d.fqn) ASC, d.fqn ASC
                    LIMIT ?
                    """,
                    (match, *kind_values, max_results * _OVERFETCH),
                ).fetchall()
            except sqlite3.OperationalError as e:
                logger.warning(f"Index query failed for {terms!r}: {e}")
                return []
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to query index: {e}") from e

        # overloads and duplicate classes share an FQN
        hits: dict[str, IndexHit] = {}
        for r in rows:
            if r["fqn"] not in hits:
                hits[r["fqn"]] = IndexHit(fqn=r["fqn"], kind=r["kind"], score=r["score"])
        return list(hits.values())[:max_results]

    def search_classes(self, query: str, max_results: int) -> List[str]:
        """Free-text search over class documents, best matches first."""
        hits = self._search([query], [SymbolKind.CLASS], max_results)
        return [h.fqn for h in hits]

    def search_classes_methods(self, terms: List[str], max_results: int) -> List[str]:
        """Search class and method documents matching all terms."""
        hits = self._search(terms, [SymbolKind.CLASS, SymbolKind.METHOD], max_results)
        return [h.fqn for h in hits]

    def count_documents(self) -> int:
        with self._lock:
            row = self._connection().execute("SELECT COUNT(*) AS n FROM symbol_docs").fetchone()
        return int(row["n"])

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    def close(self) -> None:
        """
        Close the connection, discarding uncommitted writes.

        The store cannot be used afterwards.
        """
        with self._lock:
            self._closed = True
            if self._conn:
                self._conn.close()
                self._conn = None
                self._initialized = False


def create_index_store(db_path: Path | str) -> SymbolIndexStore:
    """Factory function to create an index store."""
    return SymbolIndexStore(db_path)
