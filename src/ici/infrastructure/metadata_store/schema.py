"""
Metadata store schema definitions and migrations.
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA = """
-- One row per indexed file or archive
CREATE TABLE IF NOT EXISTS file_checks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uri TEXT NOT NULL UNIQUE,
    path TEXT NOT NULL,
    kind TEXT NOT NULL,
    change_token TEXT NOT NULL,
    indexed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Publicly visible declarations; descriptor/internal use '' for "absent"
-- so the uniqueness constraint also covers classes
CREATE TABLE IF NOT EXISTS fqn_symbols (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_id INTEGER NOT NULL REFERENCES file_checks(id) ON DELETE CASCADE,
    container_uri TEXT NOT NULL,
    entry_path TEXT NOT NULL,
    fqn TEXT NOT NULL,
    descriptor TEXT NOT NULL DEFAULT '',
    internal TEXT NOT NULL DEFAULT '',
    source_uri TEXT,
    line INTEGER,
    UNIQUE (fqn, descriptor, internal)
);

CREATE INDEX IF NOT EXISTS idx_symbols_container
    ON fqn_symbols(container_uri);
CREATE INDEX IF NOT EXISTS idx_symbols_fqn
    ON fqn_symbols(fqn);
"""


def initialize_schema(conn: sqlite3.Connection) -> None:
    """Initialize the database schema."""
    conn.executescript(SCHEMA)
    conn.commit()


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Run schema migrations for existing databases."""
    try:
        cursor = conn.execute("PRAGMA table_info(file_checks)")
        columns = {row[1] for row in cursor.fetchall()}

        if "indexed_at" not in columns:
            logger.info("Migrating database: adding indexed_at column to file_checks")
            conn.execute("ALTER TABLE file_checks ADD COLUMN indexed_at TIMESTAMP")
            conn.commit()
    except sqlite3.Error as e:
        logger.warning(f"Schema migration warning: {e}")
