"""SQLite connection shared by the content store and the keyword index."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Seconds a writer waits on a locked database before failing
BUSY_TIMEOUT_SECONDS = 5.0


class Database:
    """One SQLite connection, usable from worker threads.

    Keyword searches run in ``asyncio.to_thread`` while writes happen on the
    event loop, so the connection is opened with ``check_same_thread=False``
    and file databases use WAL journaling.
    """

    def __init__(self, db_path: Path | str):
        """Open the database.

        Args:
            db_path: Database file, or ":memory:" for an in-memory database.
        """
        self.db_path = db_path
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            db_path, check_same_thread=False, timeout=BUSY_TIMEOUT_SECONDS
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        if str(db_path) != ":memory:":
            self._conn.execute("PRAGMA journal_mode = WAL")

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    def executemany(self, sql: str, params_list: list[tuple[Any, ...]]) -> sqlite3.Cursor:
        return self._conn.executemany(sql, params_list)

    def executescript(self, sql: str) -> sqlite3.Cursor:
        return self._conn.executescript(sql)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Commit the enclosed statements together, or roll all of them back.

        Raises:
            sqlite3.Error: Re-raised after the rollback.
        """
        try:
            yield self
        except sqlite3.Error as e:
            logger.error(f"Rolling back transaction on {self.db_path}: {e}")
            self._conn.rollback()
            raise
        else:
            self._conn.commit()

    def close(self) -> None:
        self._conn.close()
