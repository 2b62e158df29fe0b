"""Tests for similarity scoring, selection and context assembly."""

import math

import pytest

from services.rag.RetrievalEngine import ScoredChunk, build_context, cosine_similarity, select_chunks
from shared.errors import RetrievalFailure
from shared.models.document import DocumentChunk


def _chunk(file_id: str, index: int, text: str = "", embedding: list[float] | None = None, pages=None) -> DocumentChunk:
    return DocumentChunk(
        id=f"{file_id}_chunk_{index}",
        file_id=file_id,
        file_name=f"{file_id}.pdf",
        text=text or f"text {index}",
        embedding=embedding if embedding is not None else [1.0, 0.0],
        chunk_index=index,
        page_numbers=pages or [],
    )


def _ranked(scores: list[float]) -> list[ScoredChunk]:
    return [ScoredChunk(_chunk("doc", i), score) for i, score in enumerate(scores)]


class AxisEmbedder:
    """Embeds every text onto the first axis."""

    async def do_embed_text(self, text: str) -> list[float]:
        return [1.0, 0.0]


# -------------------------------------------------------------------------
# cosine similarity
# -------------------------------------------------------------------------


def test_cosine_similarity_basics():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine_similarity([1, 1], [1, 0]) == pytest.approx(1 / math.sqrt(2))


def test_cosine_similarity_zero_vector_scores_zero():
    assert cosine_similarity([0, 0], [1, 2]) == 0.0


def test_cosine_similarity_rejects_dimension_mismatch():
    with pytest.raises(ValueError):
        cosine_similarity([1, 2, 3], [1, 2])


# -------------------------------------------------------------------------
# selection
# -------------------------------------------------------------------------


def test_selection_keeps_chunks_above_threshold_in_order():
    selected = select_chunks(_ranked([0.82, 0.55, 0.30, 0.10]), 0.4, 5)
    assert [s.similarity for s in selected] == [0.82, 0.55]


def test_selection_falls_back_to_best_chunk():
    selected = select_chunks(_ranked([0.2, 0.1]), 0.4, 5)
    assert [s.similarity for s in selected] == [0.2]


def test_selection_is_capped():
    scores = [0.99, 0.95, 0.9, 0.85, 0.8, 0.75, 0.7, 0.65]
    selected = select_chunks(_ranked(scores), 0.4, 5)
    assert [s.similarity for s in selected] == scores[:5]


def test_selection_of_nothing_is_empty():
    assert select_chunks([], 0.4, 5) == []


# -------------------------------------------------------------------------
# context
# -------------------------------------------------------------------------


def test_context_groups_by_document_with_pages():
    selected = [
        ScoredChunk(_chunk("a", 0, text="alpha one", pages=[1, 2]), 0.9),
        ScoredChunk(_chunk("b", 0, text="beta one"), 0.8),
        ScoredChunk(_chunk("a", 3, text="alpha four", pages=[4]), 0.7),
    ]

    assert build_context(selected) == "\n".join(
        [
            "\n=== DOCUMENT: a.pdf ===",
            "[Excerpt 1 (Pages: 1, 2)]",
            "alpha one",
            "",
            "[Excerpt 2 (Pages: 4)]",
            "alpha four",
            "",
            "\n=== DOCUMENT: b.pdf ===",
            "[Excerpt 1]",
            "beta one",
            "",
        ]
    )


# -------------------------------------------------------------------------
# engine
# -------------------------------------------------------------------------


async def test_retrieve_ranks_and_cites(retrieval_engine, vector_store):
    vector_store.replace_chunks(
        "a",
        [
            _chunk("a", 0, text="far", embedding=[0.0, 1.0]),
            _chunk("a", 1, text="near", embedding=[1.0, 0.1], pages=[2]),
        ],
    )

    retrieval_engine._embed = AxisEmbedder()
    result = await retrieval_engine.do_retrieve("question", ["a"])

    assert [s.chunk_index for s in result.sources] == [1]
    assert result.sources[0].page_numbers == [2]
    assert result.sources[0].similarity == pytest.approx(1 / math.sqrt(1.01))
    assert "near" in result.context
    assert "far" not in result.context


async def test_retrieve_only_searches_active_files(retrieval_engine, vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0, text="apple", embedding=[1.0, 0.0])])
    vector_store.replace_chunks("b", [_chunk("b", 0, text="banana", embedding=[1.0, 0.0])])

    retrieval_engine._embed = AxisEmbedder()
    result = await retrieval_engine.do_retrieve("question", ["b"])

    assert {s.file_name for s in result.sources} == {"b.pdf"}


async def test_retrieve_without_indexed_chunks_fails(retrieval_engine, vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0).model_copy(update={"embedding": None})])

    with pytest.raises(RetrievalFailure) as exc_info:
        await retrieval_engine.do_retrieve("question", ["a", "missing"])
    assert exc_info.value.no_indexed_content


async def test_retrieve_wraps_query_embedding_failure(retrieval_engine, vector_store, make_embed_client):
    vector_store.replace_chunks("a", [_chunk("a", 0)])
    retrieval_engine._embed = make_embed_client(fail_on=("question",))

    with pytest.raises(RetrievalFailure) as exc_info:
        await retrieval_engine.do_retrieve("question", ["a"])
    assert not exc_info.value.no_indexed_content


async def test_retrieve_rejects_dimension_mismatch(retrieval_engine, vector_store):
    vector_store.replace_chunks("a", [_chunk("a", 0, embedding=[1.0, 0.0, 0.0])])

    with pytest.raises(RetrievalFailure):
        # the fake embeds into 26 dimensions
        await retrieval_engine.do_retrieve("question", ["a"])
