"""Tests for turning todo and memory rows into documents."""

import sqlite3
from datetime import datetime, timezone

import pytest

from recollect.db.content import ContentStore, MemoryRecord, TodoRecord
from recollect.indexing.documents import (
    memory_to_document,
    parse_timestamp,
    tags_from_metadata,
    todo_to_document,
)
from recollect.search.schemas import ContentType


def test_parse_timestamp_assumes_utc():
    parsed = parse_timestamp("2026-03-01 10:30:00")

    assert parsed == datetime(2026, 3, 1, 10, 30, tzinfo=timezone.utc)


def test_parse_timestamp_keeps_offset():
    parsed = parse_timestamp("2026-03-01T10:30:00+02:00")

    assert parsed.utcoffset().total_seconds() == 7200


def test_parse_timestamp_falls_back_to_now():
    before = datetime.now(timezone.utc)

    parsed = parse_timestamp("not a date")

    assert parsed >= before
    assert parse_timestamp(None).tzinfo is not None


def test_tags_from_metadata():
    assert tags_from_metadata({"tags": '["a", "b"]'}) == ["a", "b"]
    assert tags_from_metadata({}) == []
    assert tags_from_metadata({"tags": "legacy"}) == ["legacy"]
    assert tags_from_metadata({"tags": '{"not": "a list"}'}) == []


def test_todo_to_document():
    todo = TodoRecord(
        id="t1",
        user_id="u1",
        title="Renew passport",
        description="Bring photos",
        due_date="2026-11-01",
        priority="high",
        status="pending",
        group_id="g1",
        tags=["travel"],
        created_at="2026-10-01 08:00:00",
    )

    doc = todo_to_document(todo)

    assert doc.key == "todo-t1"
    assert doc.content_type == ContentType.TODO
    assert doc.title == "Renew passport"
    assert doc.content == "Renew passport\nBring photos"
    assert doc.metadata == {
        "priority": "high",
        "status": "pending",
        "group_id": "g1",
        "tags": '["travel"]',
        "due_date": "2026-11-01",
    }
    assert doc.created_at.year == 2026


def test_todo_without_description_uses_title():
    doc = todo_to_document(TodoRecord(id="t1", user_id="u1", title="Water plants"))

    assert doc.content == "Water plants"
    assert doc.metadata == {"priority": "medium", "status": "pending"}


def test_memory_to_document():
    memory = MemoryRecord(
        id="m1",
        user_id="u1",
        content="Article about sleep",
        summary="Sleep matters",
        category="Health",
        url="https://example.com/sleep",
        url_title="Why We Sleep",
    )

    doc = memory_to_document(memory)

    assert doc.key == "memory-m1"
    assert doc.title == "Why We Sleep"
    assert doc.content == "Article about sleep\nSummary: Sleep matters"
    assert doc.metadata == {"category": "Health", "url": "https://example.com/sleep"}


def test_rows_round_trip_through_content_store(temp_db, add_todo, add_memory):
    store = ContentStore(temp_db)
    todo_id = add_todo(title="Call mom", tags=["family", "weekly"], priority="high")
    memory_id = add_memory(content="Gift ideas", is_archived=True)

    todo = store.get_todo_by_id(todo_id)
    memory = store.get_memory_by_id(memory_id)

    assert todo.tags == ["family", "weekly"]
    assert todo.priority == "high"
    assert memory.is_archived
    assert store.list_memories("user-1") == []
    assert len(store.list_memories("user-1", include_archived=True)) == 1
    assert store.get_todo_by_id("missing") is None


def test_malformed_tags_are_ignored(temp_db, add_todo):
    todo_id = add_todo(title="Odd tags")
    temp_db.execute("UPDATE todos SET tags = 'not json' WHERE id = ?", (todo_id,))
    temp_db.commit()

    assert ContentStore(temp_db).get_todo_by_id(todo_id).tags == []


def test_transaction_rolls_back_on_error(temp_db, add_todo):
    add_todo(title="Keep me")

    with pytest.raises(sqlite3.IntegrityError):
        with temp_db.transaction():
            temp_db.execute("DELETE FROM todos")
            temp_db.execute("INSERT INTO todos (id, user_id, title) VALUES (NULL, NULL, NULL)")

    assert len(ContentStore(temp_db).list_todos("user-1")) == 1
