"""Database migrations and schema management for Recollect."""

import logging
import sqlite3

from recollect.db.connection import Database

logger = logging.getLogger(__name__)

# Schema version for tracking migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Todos (owned by the todo CRUD service; read here for indexing)
CREATE TABLE IF NOT EXISTS todos (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    group_id TEXT,
    title TEXT NOT NULL,
    description TEXT,
    due_date TEXT,
    priority TEXT DEFAULT 'medium' CHECK(priority IN ('low', 'medium', 'high')),
    status TEXT DEFAULT 'pending' CHECK(status IN ('pending', 'completed')),
    position TEXT DEFAULT '1000',
    tags TEXT DEFAULT '[]',  -- JSON array of strings
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Memories: short notes, optionally captured from a URL
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    content TEXT NOT NULL,
    summary TEXT,
    category TEXT DEFAULT 'Uncategorized',
    url TEXT,
    url_title TEXT,
    url_content TEXT,
    is_archived INTEGER DEFAULT 0,
    position TEXT DEFAULT '1000',
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Per-user AI provider configurations
CREATE TABLE IF NOT EXISTS ai_providers (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    provider_type TEXT NOT NULL CHECK(provider_type IN ('openai', 'anthropic', 'google', 'custom')),
    base_url TEXT NOT NULL,
    api_key_encrypted TEXT NOT NULL,
    selected_model TEXT,
    is_default INTEGER DEFAULT 0,
    is_enabled INTEGER DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_todos_user_id ON todos(user_id);
CREATE INDEX IF NOT EXISTS idx_memories_user_id ON memories(user_id);
CREATE INDEX IF NOT EXISTS idx_memories_created_at ON memories(created_at);
CREATE INDEX IF NOT EXISTS idx_ai_providers_user_id ON ai_providers(user_id);
"""

# Full-text search index over todos and memories, kept in sync by triggers.
# Archived memories are not searchable. Identity columns are stored but not
# tokenized, so a query for "todo" does not match every todo.
FTS_SCHEMA_SQL = """
CREATE VIRTUAL TABLE IF NOT EXISTS content_fts USING fts5(
    content_id UNINDEXED,
    content_type UNINDEXED,
    user_id UNINDEXED,
    title,
    content,
    tags,
    category,
    tokenize='porter unicode61'
);

CREATE TRIGGER IF NOT EXISTS todos_ai AFTER INSERT ON todos BEGIN
    INSERT INTO content_fts(content_id, content_type, user_id, title, content, tags, category)
    VALUES (NEW.id, 'todo', NEW.user_id, NEW.title, COALESCE(NEW.description, ''),
            COALESCE(NEW.tags, ''), '');
END;

CREATE TRIGGER IF NOT EXISTS todos_ad AFTER DELETE ON todos BEGIN
    DELETE FROM content_fts WHERE content_id = OLD.id AND content_type = 'todo';
END;

CREATE TRIGGER IF NOT EXISTS todos_au AFTER UPDATE ON todos BEGIN
    DELETE FROM content_fts WHERE content_id = OLD.id AND content_type = 'todo';
    INSERT INTO content_fts(content_id, content_type, user_id, title, content, tags, category)
    VALUES (NEW.id, 'todo', NEW.user_id, NEW.title, COALESCE(NEW.description, ''),
            COALESCE(NEW.tags, ''), '');
END;

CREATE TRIGGER IF NOT EXISTS memories_ai AFTER INSERT ON memories BEGIN
    INSERT INTO content_fts(content_id, content_type, user_id, title, content, tags, category)
    SELECT NEW.id, 'memory', NEW.user_id, COALESCE(NEW.url_title, ''), NEW.content, '',
           COALESCE(NEW.category, '')
    WHERE COALESCE(NEW.is_archived, 0) = 0;
END;

CREATE TRIGGER IF NOT EXISTS memories_ad AFTER DELETE ON memories BEGIN
    DELETE FROM content_fts WHERE content_id = OLD.id AND content_type = 'memory';
END;

CREATE TRIGGER IF NOT EXISTS memories_au AFTER UPDATE ON memories BEGIN
    DELETE FROM content_fts WHERE content_id = OLD.id AND content_type = 'memory';
    INSERT INTO content_fts(content_id, content_type, user_id, title, content, tags, category)
    SELECT NEW.id, 'memory', NEW.user_id, COALESCE(NEW.url_title, ''), NEW.content, '',
           COALESCE(NEW.category, '')
    WHERE COALESCE(NEW.is_archived, 0) = 0;
END;
"""


def run_migrations(db: Database) -> None:
    """Run database migrations to set up or upgrade schema.

    Args:
        db: Database connection to run migrations on.
    """
    try:
        result = db.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        current_version = result[0] if result else 0
    except sqlite3.OperationalError:
        # Table doesn't exist yet
        current_version = 0

    if current_version >= SCHEMA_VERSION:
        return

    # executescript auto-commits, so the version insert is handled separately
    db.executescript(SCHEMA_SQL)
    db.executescript(FTS_SCHEMA_SQL)

    db.execute(
        "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
        (SCHEMA_VERSION,),
    )
    db.commit()
    logger.info(f"Database schema migrated from version {current_version} to {SCHEMA_VERSION}")
