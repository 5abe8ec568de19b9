"""Shared pytest fixtures for all tests.

These fixtures properly clean up resources to prevent file descriptor leaks.
"""

import gc
import json
import math
import re
import zlib
from itertools import count

import pytest

from recollect.db.connection import Database
from recollect.db.migrations import run_migrations
from recollect.vectorstore.store import VectorIndex

_WORD = re.compile(r"\w+")


class FakeEmbedder:
    """Deterministic bag-of-words embedder.

    Texts sharing words get similar vectors, which is enough to exercise
    nearest-neighbour search without an embedding provider.
    """

    def __init__(self, dimension: int = 64, model: str = "test/fake-embed"):
        self.dimension = dimension
        self.model = model
        self.calls: list[tuple[str, str]] = []

    def vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dimension
        vec[0] = 0.01
        for word in _WORD.findall(text.lower()):
            vec[zlib.crc32(word.encode()) % self.dimension] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        return [v / norm for v in vec]

    async def embed_passage(self, text: str) -> list[float]:
        self.calls.append(("passage", text))
        return self.vector(text)

    async def embed_query(self, text: str) -> list[float]:
        self.calls.append(("query", text))
        return self.vector(text)


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Clean up resources after each test to prevent file descriptor leaks.

    This runs automatically after every test to help garbage collect
    any lingering ChromaDB or SQLite connections.
    """
    yield
    # Force garbage collection to release file handles
    gc.collect()


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database with the full schema applied."""
    db = Database(tmp_path / "test.db")
    run_migrations(db)
    yield db
    # Clean up to release file handles
    db.close()
    gc.collect()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def temp_vector_index(tmp_path, fake_embedder):
    """Create a temporary vector index that cleans up properly."""
    index_path = tmp_path / "chroma"
    index_path.mkdir()
    index = VectorIndex(index_path, fake_embedder)
    yield index
    # Clean up to release file handles
    index.close()
    gc.collect()


@pytest.fixture
def add_todo(temp_db):
    """Insert a todo row and return its ID."""
    ids = count(1)

    def _add(
        user_id="user-1",
        title="Todo",
        description="",
        tags=None,
        status="pending",
        priority="medium",
        due_date=None,
        todo_id=None,
    ):
        todo_id = todo_id or f"todo-{next(ids)}"
        temp_db.execute(
            """
            INSERT INTO todos (id, user_id, title, description, tags, status, priority, due_date)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                todo_id,
                user_id,
                title,
                description,
                json.dumps(tags or []),
                status,
                priority,
                due_date,
            ),
        )
        temp_db.commit()
        return todo_id

    return _add


@pytest.fixture
def add_memory(temp_db):
    """Insert a memory row and return its ID."""
    ids = count(1)

    def _add(
        user_id="user-1",
        content="Memory",
        summary=None,
        category="Uncategorized",
        url=None,
        url_title=None,
        is_archived=False,
        memory_id=None,
    ):
        memory_id = memory_id or f"memory-{next(ids)}"
        temp_db.execute(
            """
            INSERT INTO memories (id, user_id, content, summary, category, url, url_title, is_archived)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (memory_id, user_id, content, summary, category, url, url_title, int(is_archived)),
        )
        temp_db.commit()
        return memory_id

    return _add
