"""Keyword search over todos and memories with SQLite FTS5."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from recollect.constants.search import (
    DEFAULT_SEARCH_LIMIT,
    FTS_SNIPPET_TOKENS,
    FTS_SPECIAL_CHARS,
    HIGHLIGHT_CLOSE,
    HIGHLIGHT_OPEN,
)
from recollect.db.connection import Database
from recollect.db.migrations import FTS_SCHEMA_SQL

logger = logging.getLogger(__name__)

_STRIP_SPECIAL = str.maketrans({ch: " " for ch in FTS_SPECIAL_CHARS})
_WORD = re.compile(r"\w+")

EMPTY_FTS_QUERY = '""'


def prepare_fts_query(query: str) -> str:
    """Turn free text into a safe FTS5 prefix query.

    FTS5 operator characters are stripped and every remaining word becomes a
    lowercase prefix term, so "Meeting notes!" becomes "meeting* notes*".
    Words are lowercased so AND/OR/NOT are not read as operators.

    Args:
        query: User input.

    Returns:
        FTS5 MATCH expression, or '""' when nothing searchable remains.
    """
    words = _WORD.findall(query.translate(_STRIP_SPECIAL))
    if not words:
        return EMPTY_FTS_QUERY
    return " ".join(f"{word.lower()}*" for word in words)


@dataclass
class KeywordHit:
    """A single FTS5 match."""

    content_id: str
    content_type: str
    user_id: str
    title: str
    content: str
    tags: str
    category: str
    rank: float
    snippet: str

    @property
    def score(self) -> float:
        """Higher-is-better score derived from the FTS5 rank."""
        return max(0.0, -self.rank)


class KeywordIndex:
    """FTS5 index kept in sync with the todos and memories tables by triggers."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def init_tables(self) -> None:
        """Create the FTS table and sync triggers if missing."""
        self._db.executescript(FTS_SCHEMA_SQL)

    def rebuild(self) -> int:
        """Repopulate the index from the todos and memories tables.

        Returns:
            Number of indexed rows.
        """
        with self._db.transaction():
            self._db.execute("DELETE FROM content_fts")
            self._db.execute(
                """
                INSERT INTO content_fts(content_id, content_type, user_id, title, content, tags, category)
                SELECT id, 'todo', user_id, title, COALESCE(description, ''), COALESCE(tags, ''), ''
                FROM todos
                """
            )
            self._db.execute(
                """
                INSERT INTO content_fts(content_id, content_type, user_id, title, content, tags, category)
                SELECT id, 'memory', user_id, COALESCE(url_title, ''), content, '',
                       COALESCE(category, '')
                FROM memories WHERE is_archived = 0
                """
            )
        count = self.document_count()
        logger.info(f"Rebuilt keyword index with {count} documents")
        return count

    def document_count(self) -> int:
        row = self._db.execute("SELECT COUNT(*) FROM content_fts").fetchone()
        return int(row[0]) if row else 0

    def document_count_by_type(self) -> dict[str, int]:
        rows = self._db.execute(
            "SELECT content_type, COUNT(*) AS n FROM content_fts GROUP BY content_type"
        ).fetchall()
        return {row["content_type"]: int(row["n"]) for row in rows}

    def search(
        self,
        user_id: str,
        query: str,
        content_types: list[str] | None = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[KeywordHit]:
        """Search a user's documents, best match first.

        Args:
            user_id: Only this user's documents are searched.
            query: Free-text query.
            content_types: Optional filter, e.g. ["todo"].
            limit: Maximum hits; non-positive uses the default.

        Returns:
            Hits ordered by FTS5 rank.
        """
        if limit <= 0:
            limit = DEFAULT_SEARCH_LIMIT

        fts_query = prepare_fts_query(query)
        if fts_query == EMPTY_FTS_QUERY:
            return []

        where = "content_fts MATCH ? AND user_id = ?"
        params: list = [fts_query, user_id]
        if content_types:
            placeholders = ",".join("?" for _ in content_types)
            where += f" AND content_type IN ({placeholders})"
            params.extend(content_types)
        params.append(limit)

        sql = f"""
            SELECT content_id, content_type, user_id, title, content, tags, category, rank,
                   snippet(content_fts, 3, '{HIGHLIGHT_OPEN}', '{HIGHLIGHT_CLOSE}', '...',
                           {FTS_SNIPPET_TOKENS}) AS snippet
            FROM content_fts
            WHERE {where}
            ORDER BY rank
            LIMIT ?
        """
        rows = self._db.execute(sql, tuple(params)).fetchall()

        return [
            KeywordHit(
                content_id=row["content_id"],
                content_type=row["content_type"],
                user_id=row["user_id"],
                title=row["title"] or "",
                content=row["content"] or "",
                tags=row["tags"] or "",
                category=row["category"] or "",
                rank=float(row["rank"]),
                snippet=row["snippet"] or "",
            )
            for row in rows
        ]
