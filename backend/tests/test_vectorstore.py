"""Vector index tests."""

import pytest

from recollect.indexing.chunking import DocumentChunker
from recollect.search.schemas import ContentType, Document, MatchType
from recollect.vectorstore import EmbeddingDimensionError, VectorIndex, collection_name_for


def _doc(content_id, content, user_id="user-1", content_type=ContentType.MEMORY, title="",
         metadata=None):
    return Document(
        content_id=content_id,
        content_type=content_type,
        user_id=user_id,
        title=title,
        content=content,
        metadata=metadata or {},
    )


def test_collection_name_encodes_model_and_dimension():
    assert collection_name_for("nvidia/nv-embedqa-e5-v5", 1024) == (
        "documents-nvidia-nv-embedqa-e5-v5-1024"
    )
    assert collection_name_for("!!!", 8) == "documents-model-8"


def test_index_is_tagged_with_embedder(temp_vector_index, fake_embedder):
    assert temp_vector_index.model == fake_embedder.model
    assert temp_vector_index.dimension == 64
    metadata = temp_vector_index.collection.metadata
    assert metadata["embedding_model"] == fake_embedder.model
    assert metadata["embedding_dimension"] == 64


async def test_add_and_search(temp_vector_index):
    await temp_vector_index.add(_doc("m1", "sourdough bread recipe with rye flour"))
    await temp_vector_index.add(_doc("m2", "quarterly tax filing deadline reminder"))

    results = await temp_vector_index.search_by_user("user-1", "rye sourdough bread", limit=5)

    assert results[0].document.content_id == "m1"
    assert results[0].match_type == MatchType.VECTOR
    assert all(0.0 <= r.score <= 1.0 for r in results)
    assert results[0].score > results[-1].score


async def test_search_is_scoped_to_user(temp_vector_index):
    await temp_vector_index.add(_doc("m1", "hiking trip packing list", user_id="alice"))
    await temp_vector_index.add(_doc("m2", "hiking boots to buy", user_id="bob"))

    results = await temp_vector_index.search_by_user("bob", "hiking", limit=10)

    assert [r.document.user_id for r in results] == ["bob"]


async def test_search_filters_content_types(temp_vector_index):
    await temp_vector_index.add(_doc("t1", "renew car insurance", content_type=ContentType.TODO))
    await temp_vector_index.add(_doc("m1", "car insurance quote notes"))

    results = await temp_vector_index.search_by_user(
        "user-1", "car insurance", limit=10, content_types=[ContentType.TODO]
    )

    assert [r.document.content_type for r in results] == [ContentType.TODO]


async def test_search_empty_index_and_zero_limit(temp_vector_index):
    assert await temp_vector_index.search_by_user("user-1", "anything", limit=5) == []

    await temp_vector_index.add(_doc("m1", "some indexed note"))
    assert await temp_vector_index.search_by_user("user-1", "note", limit=0) == []


async def test_add_replaces_existing_vector(temp_vector_index):
    await temp_vector_index.add(_doc("m1", "first version of the note"))
    await temp_vector_index.add(_doc("m1", "second version of the note"))

    assert temp_vector_index.collection.count() == 1
    stored = temp_vector_index.get_by_content_id(ContentType.MEMORY, "m1")
    assert stored.content == "second version of the note"


async def test_get_by_content_id_round_trips_metadata(temp_vector_index):
    await temp_vector_index.add(
        _doc(
            "t1",
            "Book dentist\nCall before noon",
            content_type=ContentType.TODO,
            title="Book dentist",
            metadata={"priority": "high", "status": "pending", "tags": '["health"]'},
        )
    )

    doc = temp_vector_index.get_by_content_id(ContentType.TODO, "t1")

    assert doc.title == "Book dentist"
    assert doc.user_id == "user-1"
    assert doc.metadata == {"priority": "high", "status": "pending", "tags": '["health"]'}
    assert temp_vector_index.get_by_content_id(ContentType.TODO, "missing") is None
    assert temp_vector_index.get_by_content_id(ContentType.MEMORY, "t1") is None


async def test_passage_text_includes_category_and_tags(temp_vector_index, fake_embedder):
    await temp_vector_index.add(
        _doc(
            "t1",
            "Pack for the trip",
            content_type=ContentType.TODO,
            title="Trip",
            metadata={"category": "Travel", "tags": '["family", "summer"]'},
        )
    )

    kind, text = fake_embedder.calls[-1]
    assert kind == "passage"
    assert text == "Trip\nPack for the trip\nCategory: Travel\nTags: family, summer"


async def test_long_documents_embed_first_chunk(tmp_path, fake_embedder):
    index_path = tmp_path / "chroma-long"
    index_path.mkdir()
    index = VectorIndex(
        index_path, fake_embedder, chunker=DocumentChunker(max_tokens=60, min_tokens=5)
    )
    try:
        long_text = " ".join(f"Sentence number {i} is here." for i in range(100))
        await index.add(_doc("m1", long_text))

        _, text = fake_embedder.calls[-1]
        assert len(text) < len(long_text)
        assert text.startswith("Sentence number 0")
        # The stored document keeps the full content
        assert index.get_by_content_id(ContentType.MEMORY, "m1").content == long_text
    finally:
        index.close()


async def test_delete_by_content_id(temp_vector_index):
    await temp_vector_index.add(_doc("m1", "note one about gardening"))
    await temp_vector_index.add(_doc("m2", "note two about gardening"))

    temp_vector_index.delete_by_content_id(ContentType.MEMORY, "m1")
    temp_vector_index.delete_by_content_id(ContentType.MEMORY, "never-indexed")

    assert temp_vector_index.get_by_content_id(ContentType.MEMORY, "m1") is None
    assert temp_vector_index.get_by_content_id(ContentType.MEMORY, "m2") is not None


async def test_delete_by_user(temp_vector_index):
    await temp_vector_index.add(_doc("m1", "alice memory text", user_id="alice"))
    await temp_vector_index.add(
        _doc("t1", "alice todo text", user_id="alice", content_type=ContentType.TODO)
    )
    await temp_vector_index.add(_doc("m2", "bob memory text", user_id="bob"))

    temp_vector_index.delete_by_user("alice", content_type=ContentType.TODO)
    assert temp_vector_index.stats("alice").total_documents == 1

    temp_vector_index.delete_by_user("alice")
    assert temp_vector_index.stats("alice").total_documents == 0
    assert temp_vector_index.stats("bob").total_documents == 1


async def test_stats(temp_vector_index, fake_embedder):
    await temp_vector_index.add(_doc("m1", "memory for alice", user_id="alice"))
    await temp_vector_index.add(
        _doc("t1", "todo for alice", user_id="alice", content_type=ContentType.TODO)
    )
    await temp_vector_index.add(_doc("m2", "memory for bob", user_id="bob"))

    overall = temp_vector_index.stats()
    alice = temp_vector_index.stats("alice")

    assert overall.total_documents == 3
    assert overall.by_user == {"alice": 2, "bob": 1}
    assert alice.by_content_type == {"memory": 1, "todo": 1}
    assert alice.last_indexed_at is not None
    assert alice.embedding_model == fake_embedder.model
    assert alice.embedding_dimension == 64


async def test_wrong_dimension_is_rejected(temp_vector_index, fake_embedder):
    async def short_vector(text):
        return [1.0, 0.0]

    fake_embedder.embed_passage = short_vector

    with pytest.raises(EmbeddingDimensionError):
        await temp_vector_index.add(_doc("m1", "this vector is too short"))
    assert temp_vector_index.collection.count() == 0
