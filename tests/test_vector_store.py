import pytest

from shared.models.document import DocumentChunk


def _chunk(file_id: str, index: int, embedding: list[float] | None = None) -> DocumentChunk:
    return DocumentChunk(
        id=f"{file_id}_chunk_{index}",
        file_id=file_id,
        file_name=f"{file_id}.pdf",
        text=f"text {index}",
        embedding=embedding if embedding is not None else [1.0, 0.0],
        chunk_index=index,
    )


def test_replace_orders_chunks_by_index(vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 2), _chunk("a", 0), _chunk("a", 1)])

    assert [c.chunk_index for c in vector_store.chunks_for_files(["a"])] == [0, 1, 2]
    assert len(vector_store) == 3


def test_replace_swaps_only_the_given_file(vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0), _chunk("a", 1)])
    vector_store.replace_chunks("b", [_chunk("b", 0)])

    vector_store.replace_chunks("a", [_chunk("a", 0)])

    assert [c.id for c in vector_store.chunks_for_files(["a", "b"])] == ["b_chunk_0", "a_chunk_0"]
    assert vector_store.get_chunk("a_chunk_1") is None


def test_empty_replacement_removes_the_file(vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0)])
    vector_store.replace_chunks("a", [])

    assert vector_store.file_ids() == []
    assert len(vector_store) == 0


def test_chunks_for_files_filters(vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0)])
    vector_store.replace_chunks("b", [_chunk("b", 0)])

    assert [c.file_id for c in vector_store.chunks_for_files(["b"])] == ["b"]
    assert vector_store.chunks_for_files(["missing"]) == []


def test_foreign_chunk_is_rejected(vector_store):
    with pytest.raises(ValueError):
        vector_store.replace_chunks("a", [_chunk("b", 0)])


def test_duplicate_ids_are_rejected(vector_store):
    with pytest.raises(ValueError):
        vector_store.replace_chunks("a", [_chunk("a", 0), _chunk("a", 0)])


def test_failed_replace_keeps_previous_snapshot(vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0)])
    with pytest.raises(ValueError):
        vector_store.replace_chunks("a", [_chunk("a", 1), _chunk("b", 0)])

    assert [c.id for c in vector_store.chunks_for_files(["a"])] == ["a_chunk_0"]


def test_readers_keep_their_snapshot(vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0), _chunk("a", 1)])
    before = vector_store.chunks_for_files(["a"])

    vector_store.replace_chunks("a", [_chunk("a", 5)])

    assert [c.chunk_index for c in before] == [0, 1]
    assert [c.chunk_index for c in vector_store.chunks_for_files(["a"])] == [5]


def test_has_embeddings(vector_store):
    assert not vector_store.has_embeddings("a")

    vector_store.replace_chunks("a", [_chunk("a", 0)])
    assert vector_store.has_embeddings("a")

    legacy = _chunk("a", 1).model_copy(update={"embedding": None})
    vector_store.replace_chunks("a", [_chunk("a", 0), legacy])
    assert not vector_store.has_embeddings("a")


def test_clear(vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0)])
    vector_store.clear()
    assert len(vector_store) == 0
