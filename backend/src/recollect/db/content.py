"""Read access to todos and memories, the source of truth for indexing."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field

from recollect.constants.indexing import BACKFILL_MEMORY_LIMIT
from recollect.db.connection import Database

logger = logging.getLogger(__name__)


@dataclass
class TodoRecord:
    """A row of the todos table."""

    id: str
    user_id: str
    title: str
    description: str = ""
    due_date: str | None = None
    priority: str = "medium"
    status: str = "pending"
    group_id: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""


@dataclass
class MemoryRecord:
    """A row of the memories table."""

    id: str
    user_id: str
    content: str
    summary: str = ""
    category: str = ""
    url: str = ""
    url_title: str = ""
    is_archived: bool = False
    created_at: str = ""
    updated_at: str = ""


def _parse_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed tags value: {raw!r}")
        return []
    if not isinstance(tags, list):
        return []
    return [str(tag) for tag in tags]


def _row_to_todo(row: sqlite3.Row) -> TodoRecord:
    return TodoRecord(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"] or "",
        description=row["description"] or "",
        due_date=row["due_date"],
        priority=row["priority"] or "medium",
        status=row["status"] or "pending",
        group_id=row["group_id"],
        tags=_parse_tags(row["tags"]),
        created_at=row["created_at"] or "",
        updated_at=row["updated_at"] or "",
    )


def _row_to_memory(row: sqlite3.Row) -> MemoryRecord:
    return MemoryRecord(
        id=row["id"],
        user_id=row["user_id"],
        content=row["content"] or "",
        summary=row["summary"] or "",
        category=row["category"] or "",
        url=row["url"] or "",
        url_title=row["url_title"] or "",
        is_archived=bool(row["is_archived"]),
        created_at=row["created_at"] or "",
        updated_at=row["updated_at"] or "",
    )


class ContentStore:
    """Queries over the todos and memories tables."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get_todo_by_id(self, todo_id: str) -> TodoRecord | None:
        row = self._db.execute("SELECT * FROM todos WHERE id = ?", (todo_id,)).fetchone()
        return _row_to_todo(row) if row else None

    def get_memory_by_id(self, memory_id: str) -> MemoryRecord | None:
        row = self._db.execute("SELECT * FROM memories WHERE id = ?", (memory_id,)).fetchone()
        return _row_to_memory(row) if row else None

    def list_todos(self, user_id: str) -> list[TodoRecord]:
        """All todos of a user, oldest first."""
        rows = self._db.execute(
            "SELECT * FROM todos WHERE user_id = ? ORDER BY created_at, id",
            (user_id,),
        ).fetchall()
        return [_row_to_todo(row) for row in rows]

    def list_memories(
        self,
        user_id: str,
        limit: int = BACKFILL_MEMORY_LIMIT,
        include_archived: bool = False,
    ) -> list[MemoryRecord]:
        """A user's memories, newest first.

        Args:
            user_id: Owner of the memories.
            limit: Maximum rows returned.
            include_archived: Whether archived memories are included.

        Returns:
            Memory records.
        """
        sql = "SELECT * FROM memories WHERE user_id = ?"
        if not include_archived:
            sql += " AND is_archived = 0"
        sql += " ORDER BY created_at DESC, id LIMIT ?"
        rows = self._db.execute(sql, (user_id, limit)).fetchall()
        return [_row_to_memory(row) for row in rows]

    def delete_all_for_user(self, user_id: str) -> int:
        """Delete every todo and memory of a user.

        FTS rows follow through the delete triggers.

        Returns:
            Number of rows deleted.
        """
        deleted = 0
        with self._db.transaction():
            for table in ("todos", "memories"):
                cursor = self._db.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
                deleted += cursor.rowcount or 0
        return deleted
