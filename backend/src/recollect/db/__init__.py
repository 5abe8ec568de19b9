"""Database layer for Recollect."""

from recollect.db.connection import Database
from recollect.db.content import ContentStore, MemoryRecord, TodoRecord
from recollect.db.migrations import run_migrations

__all__ = ["ContentStore", "Database", "MemoryRecord", "TodoRecord", "run_migrations"]
