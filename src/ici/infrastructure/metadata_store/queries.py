"""
Low-level SQL query executor for metadata store.

Write methods do not commit; the store wraps them in transactions.
"""

import sqlite3
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

# SQLite's default limit on host parameters is 999 on older builds
_MAX_PARAMS = 500


def _now_str() -> str:
    """Get current datetime as ISO string for SQLite."""
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _chunks(items: Sequence[str], size: int = _MAX_PARAMS) -> Iterable[Sequence[str]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


SymbolRow = Tuple[int, str, str, str, str, str, Optional[str], Optional[int]]

_SYMBOL_COLUMNS = """
    container_uri, entry_path, fqn, descriptor, internal, source_uri, line
"""


class MetadataQueryExecutor:
    """Executes SQL queries for metadata store."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    # ─────────────────────────────────────────────────────────────────
    # File Check Operations
    # ─────────────────────────────────────────────────────────────────

    def get_file(self, uri: str) -> Optional[sqlite3.Row]:
        """Get a single file check by URI."""
        cursor = self._conn.execute(
            "SELECT id, uri, path, kind, change_token FROM file_checks WHERE uri = ?",
            (uri,),
        )
        return cursor.fetchone()

    def get_all_files(self) -> List[sqlite3.Row]:
        """Get all file checks."""
        cursor = self._conn.execute(
            "SELECT id, uri, path, kind, change_token FROM file_checks ORDER BY id"
        )
        return cursor.fetchall()

    def insert_file(self, uri: str, path: str, kind: str, change_token: str) -> int:
        """Insert a file check, returns its id."""
        cursor = self._conn.execute(
            """
            INSERT INTO file_checks (uri, path, kind, change_token, indexed_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (uri, path, kind, change_token, _now_str()),
        )
        return int(cursor.lastrowid)

    def delete_files(self, uris: Sequence[str]) -> int:
        """Delete file checks and their symbols, returns file rowcount."""
        deleted = 0
        for chunk in _chunks(uris):
            placeholders = ",".join("?" * len(chunk))
            self._conn.execute(
                f"DELETE FROM fqn_symbols WHERE container_uri IN ({placeholders})",
                tuple(chunk),
            )
            cursor = self._conn.execute(
                f"DELETE FROM file_checks WHERE uri IN ({placeholders})",
                tuple(chunk),
            )
            deleted += cursor.rowcount
        return deleted

    # ─────────────────────────────────────────────────────────────────
    # Symbol Operations
    # ─────────────────────────────────────────────────────────────────

    def insert_symbols(self, file_id: int, rows: List[Tuple]) -> int:
        """
        Insert symbol rows (without file_id) for a file.

        Rows that collide with an existing symbol are skipped. Returns the
        number of rows inserted.
        """
        cursor = self._conn.executemany(
            f"""
            INSERT OR IGNORE INTO fqn_symbols (file_id, {_SYMBOL_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [(file_id, *row) for row in rows],
        )
        return cursor.rowcount if rows else 0

    def find_symbol(self, fqn: str) -> Optional[sqlite3.Row]:
        """First symbol with an exact FQN."""
        cursor = self._conn.execute(
            f"SELECT {_SYMBOL_COLUMNS} FROM fqn_symbols WHERE fqn = ? ORDER BY id LIMIT 1",
            (fqn,),
        )
        return cursor.fetchone()

    def find_symbols(self, fqns: Sequence[str]) -> List[sqlite3.Row]:
        """All symbols whose FQN is in the list, in insertion order."""
        rows: List[sqlite3.Row] = []
        for chunk in _chunks(fqns):
            placeholders = ",".join("?" * len(chunk))
            cursor = self._conn.execute(
                f"""
                SELECT {_SYMBOL_COLUMNS} FROM fqn_symbols
                WHERE fqn IN ({placeholders}) ORDER BY id
                """,
                tuple(chunk),
            )
            rows.extend(cursor.fetchall())
        return rows

    # ─────────────────────────────────────────────────────────────────
    # Statistics Operations
    # ─────────────────────────────────────────────────────────────────

    def get_file_counts(self) -> sqlite3.Row:
        cursor = self._conn.execute(
            """
            SELECT
                COUNT(*) as total_files,
                COALESCE(SUM(CASE WHEN kind = 'archive' THEN 1 ELSE 0 END), 0) as total_archives
            FROM file_checks
            """
        )
        return cursor.fetchone()

    def get_symbol_kind_breakdown(self) -> dict[str, int]:
        cursor = self._conn.execute(
            """
            SELECT
                CASE
                    WHEN descriptor != '' THEN 'method'
                    WHEN internal != '' THEN 'field'
                    ELSE 'class'
                END as kind,
                COUNT(*) as count
            FROM fqn_symbols GROUP BY kind
            """
        )
        return {r["kind"]: r["count"] for r in cursor.fetchall()}

    # ─────────────────────────────────────────────────────────────────
    # Clear Operations
    # ─────────────────────────────────────────────────────────────────

    def clear_all(self) -> None:
        """Clear all data from all tables."""
        self._conn.execute("DELETE FROM fqn_symbols")
        self._conn.execute("DELETE FROM file_checks")
