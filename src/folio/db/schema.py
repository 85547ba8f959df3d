# ABOUTME: SQL DDL statements for the folio library database schema.
# ABOUTME: Defines the books catalog, stored archive bytes, and schema versioning.

SCHEMA_V1 = """
-- One row per imported book; document holds the parsed snapshot as JSON
CREATE TABLE books (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    title            TEXT NOT NULL,
    creator          TEXT NOT NULL,
    language         TEXT NOT NULL,
    file_name        TEXT NOT NULL,
    file_size        INTEGER NOT NULL,
    file_hash        TEXT NOT NULL,
    document         TEXT NOT NULL,
    current_position INTEGER NOT NULL DEFAULT 0,
    progress_percent REAL NOT NULL DEFAULT 0,
    last_read        TEXT,
    date_added       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE UNIQUE INDEX idx_books_file_hash ON books(file_hash);
CREATE INDEX idx_books_last_read ON books(last_read) WHERE last_read IS NOT NULL;

-- Original archive bytes, kept apart so catalog listings stay cheap
CREATE TABLE files (
    book_id INTEGER PRIMARY KEY REFERENCES books(id) ON DELETE CASCADE,
    data    BLOB NOT NULL
);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# (version, DDL) pairs applied in order on top of SCHEMA_V1
MIGRATIONS: list[tuple[int, str]] = []
