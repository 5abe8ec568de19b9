"""Tests for FTS5 keyword search over todos and memories."""

import pytest

from recollect.search.keyword import KeywordIndex, prepare_fts_query


@pytest.fixture
def keyword_index(temp_db):
    return KeywordIndex(temp_db)


class TestPrepareFtsQuery:
    def test_words_become_prefix_terms(self):
        assert prepare_fts_query("Meeting notes!") == "meeting* notes*"

    def test_operators_are_lowercased(self):
        assert prepare_fts_query("cats AND dogs") == "cats* and* dogs*"

    def test_special_characters_stripped(self):
        assert prepare_fts_query('"quoted" (group) -minus') == "quoted* group* minus*"

    def test_nothing_searchable(self):
        assert prepare_fts_query('*"()') == '""'


def test_search_finds_todo_by_title_prefix(keyword_index, add_todo):
    add_todo(title="Renew passport", description="Bring two photos")

    hits = keyword_index.search("user-1", "passp")

    assert len(hits) == 1
    assert hits[0].content_type == "todo"
    assert hits[0].title == "Renew passport"
    assert hits[0].score > 0
    assert "<mark>" in hits[0].snippet


def test_search_matches_description_and_tags(keyword_index, add_todo):
    todo_id = add_todo(title="Errand", description="Pick up dry cleaning", tags=["laundry"])

    assert [h.content_id for h in keyword_index.search("user-1", "cleaning")] == [todo_id]
    assert [h.content_id for h in keyword_index.search("user-1", "laundry")] == [todo_id]


def test_search_finds_memory_by_content_and_category(keyword_index, add_memory):
    memory_id = add_memory(content="The sourdough starter needs feeding", category="Cooking")

    assert [h.content_id for h in keyword_index.search("user-1", "sourdough")] == [memory_id]
    hits = keyword_index.search("user-1", "cooking")
    assert hits[0].category == "Cooking"


def test_search_is_scoped_to_user(keyword_index, add_todo):
    add_todo(user_id="alice", title="Dentist appointment")
    add_todo(user_id="bob", title="Dentist invoice")

    hits = keyword_index.search("alice", "dentist")

    assert [h.user_id for h in hits] == ["alice"]


def test_search_filters_content_types(keyword_index, add_todo, add_memory):
    add_todo(title="Garden plan")
    add_memory(content="Garden soil test results")

    hits = keyword_index.search("user-1", "garden", content_types=["memory"])

    assert [h.content_type for h in hits] == ["memory"]


def test_identity_columns_are_not_searchable(keyword_index, add_todo):
    add_todo(title="Water plants")

    assert keyword_index.search("user-1", "todo") == []
    assert keyword_index.search("user-1", "user") == []


def test_archived_memories_are_not_indexed(keyword_index, add_memory, temp_db):
    memory_id = add_memory(content="Old apartment lease details", is_archived=True)
    assert keyword_index.search("user-1", "lease") == []

    temp_db.execute("UPDATE memories SET is_archived = 0 WHERE id = ?", (memory_id,))
    temp_db.commit()

    assert [h.content_id for h in keyword_index.search("user-1", "lease")] == [memory_id]


def test_triggers_follow_updates_and_deletes(keyword_index, add_todo, temp_db):
    todo_id = add_todo(title="Call plumber")

    temp_db.execute("UPDATE todos SET title = 'Call electrician' WHERE id = ?", (todo_id,))
    temp_db.commit()
    assert keyword_index.search("user-1", "plumber") == []
    assert len(keyword_index.search("user-1", "electrician")) == 1

    temp_db.execute("DELETE FROM todos WHERE id = ?", (todo_id,))
    temp_db.commit()
    assert keyword_index.search("user-1", "electrician") == []


def test_better_matches_rank_first(keyword_index, add_memory):
    add_memory(content="Bought milk at the market")
    best = add_memory(content="Milk milk milk: compare oat milk and almond milk")

    hits = keyword_index.search("user-1", "milk")

    assert hits[0].content_id == best
    assert hits[0].score >= hits[1].score


def test_limit(keyword_index, add_todo):
    for i in range(5):
        add_todo(title=f"Read chapter {i}")

    assert len(keyword_index.search("user-1", "chapter", limit=2)) == 2


def test_query_without_words_returns_nothing(keyword_index, add_todo):
    add_todo(title="Anything")

    assert keyword_index.search("user-1", "***") == []


def test_rebuild_and_counts(keyword_index, add_todo, add_memory):
    add_todo(title="One")
    add_memory(content="Two")
    add_memory(content="Three", is_archived=True)

    assert keyword_index.rebuild() == 2
    assert keyword_index.document_count_by_type() == {"todo": 1, "memory": 1}
