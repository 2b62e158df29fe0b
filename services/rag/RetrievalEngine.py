"""Retrieval engine: ranks stored chunks against a query and assembles the answer context.

Pipeline: select the active documents' chunks → embed the query → cosine
score every candidate → sort descending → keep everything above the
similarity threshold (or the single best chunk if nothing qualifies) → cap at
max_context_chunks → render a context grouped by document.
"""

import math
from typing import NamedTuple, Sequence

from services.rag.VectorStore import VectorStore
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.errors import EmbeddingFailure, RetrievalFailure
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentChunk, RetrievalResult, RetrievalSource


class ScoredChunk(NamedTuple):
    chunk: DocumentChunk
    similarity: float


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|). A zero vector scores 0.0.

    Raises:
        ValueError: If the vectors differ in length.
    """
    if len(vec_a) != len(vec_b):
        raise ValueError(f"Vector dimensions differ: {len(vec_a)} != {len(vec_b)}.")
    dot = sum(a * b for a, b in zip(vec_a, vec_b))
    norm = math.sqrt(sum(a * a for a in vec_a)) * math.sqrt(sum(b * b for b in vec_b))
    if norm == 0:
        return 0.0
    return dot / norm


def select_chunks(ranked: list[ScoredChunk], min_similarity: float, max_chunks: int) -> list[ScoredChunk]:
    """Pick the context chunks from a list already sorted by descending similarity.

    Everything at or above min_similarity is taken, at most max_chunks. If
    nothing reaches the threshold the single best chunk is returned, so a
    non-empty candidate list never yields an empty selection.
    """
    if not ranked:
        return []
    relevant = [scored for scored in ranked if scored.similarity >= min_similarity]
    if not relevant:
        relevant = ranked[:1]
    return relevant[:max_chunks]


def build_context(selected: list[ScoredChunk]) -> str:
    """Render the selected chunks as document-labelled sections.

    Chunks are grouped by file name in order of first appearance; within a
    document the excerpts keep their rank order.
    """
    by_document: dict[str, list[ScoredChunk]] = {}
    for scored in selected:
        by_document.setdefault(scored.chunk.file_name, []).append(scored)

    parts: list[str] = []
    for file_name, group in by_document.items():
        parts.append(f"\n=== DOCUMENT: {file_name} ===")
        for number, scored in enumerate(group, start=1):
            pages = scored.chunk.page_numbers
            page_label = f" (Pages: {', '.join(str(p) for p in pages)})" if pages else ""
            parts.append(f"[Excerpt {number}{page_label}]")
            parts.append(scored.chunk.text)
            parts.append("")
    return "\n".join(parts)


class RetrievalEngine:
    """Semantic retrieval over the vector store."""

    def __init__(
        self,
        helper_config: HelperConfig,
        vector_store: VectorStore,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = helper_config.get_rag_settings()
        self._store = vector_store
        self._embed = embed_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_retrieve(
        self,
        query: str,
        active_file_ids: list[str],
        min_similarity: float | None = None,
    ) -> RetrievalResult:
        """Retrieve the context for a question from the active documents.

        Args:
            query (str): The user question.
            active_file_ids (list[str]): Documents to search.
            min_similarity (float | None): Threshold override; defaults to RAG_MIN_SIMILARITY.

        Returns:
            RetrievalResult: Rendered context plus the parallel citation list.

        Raises:
            RetrievalFailure: If the active documents have no embedded chunks, or the query cannot be embedded.
        """
        threshold = self._settings.min_similarity if min_similarity is None else min_similarity

        candidates = [c for c in self._store.chunks_for_files(active_file_ids) if c.embedding]
        if not candidates:
            raise RetrievalFailure("No indexed content is available for the active documents.", no_indexed_content=True)

        self.logging.info("Searching %d chunks for: %r", len(candidates), query[:80])

        try:
            query_vector = await self._embed.do_embed_text(query)
        except EmbeddingFailure as exc:
            raise RetrievalFailure(f"Failed to embed the question: {exc.message}") from exc

        try:
            ranked = sorted(
                (ScoredChunk(chunk, cosine_similarity(query_vector, chunk.embedding)) for chunk in candidates),
                key=lambda scored: scored.similarity,
                reverse=True,
            )
        except ValueError as exc:
            raise RetrievalFailure(f"Query embedding does not match the indexed embeddings: {exc}") from exc

        selected = select_chunks(ranked, threshold, self._settings.max_context_chunks)
        self.logging.info(
            "Selected %d relevant chunks (threshold: %.2f), scores: %s",
            len(selected),
            threshold,
            [round(scored.similarity, 3) for scored in selected],
        )

        return RetrievalResult(
            context=build_context(selected),
            sources=[
                RetrievalSource(
                    file_name=scored.chunk.file_name,
                    similarity=scored.similarity,
                    chunk_index=scored.chunk.chunk_index,
                    page_numbers=scored.chunk.page_numbers,
                )
                for scored in selected
            ],
        )
