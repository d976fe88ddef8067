"""
Full-text index schema.

Documents live in a plain table keyed by container so removal stays cheap;
an FTS5 table over the tokenised FQN is kept in sync with triggers.
"""

import sqlite3

SCHEMA = """
CREATE TABLE IF NOT EXISTS symbol_docs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    container_uri TEXT NOT NULL,
    fqn TEXT NOT NULL,
    kind TEXT NOT NULL,
    terms TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_docs_container ON symbol_docs(container_uri);

CREATE VIRTUAL TABLE IF NOT EXISTS symbol_docs_fts USING fts5(
    terms,
    content = 'symbol_docs',
    content_rowid = 'id',
    tokenize = 'unicode61'
);

CREATE TRIGGER IF NOT EXISTS symbol_docs_ai AFTER INSERT ON symbol_docs BEGIN
  INSERT INTO symbol_docs_fts(rowid, terms) VALUES (new.id, new.terms);
END;

CREATE TRIGGER IF NOT EXISTS symbol_docs_ad AFTER DELETE ON symbol_docs BEGIN
  INSERT INTO symbol_docs_fts(symbol_docs_fts, rowid, terms)
  VALUES ('delete', old.id, old.terms);
END;
"""


def initialize_schema(conn: sqlite3.Connection) -> None:
    """Initialize the index schema."""
    conn.executescript(SCHEMA)
    conn.commit()
