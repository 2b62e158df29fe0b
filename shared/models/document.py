"""Pydantic models for documents, chunks and indexing outcomes.

Hierarchy:
  SourceDocument:   an uploaded document: extracted text plus optional pages.
  TextWindow:       a raw chunker window, before embedding.
  DocumentChunk:    an embedded chunk as held by the vector store.
  CachedChunkSet:   the persisted form of a document's chunk set.
  ChunkOutcome:     per-chunk embedding result (success or failure).
  IndexingReport:   summary of one ensure-indexed run for a document.
"""

from typing import Literal

from pydantic import BaseModel, Field


class DocumentPage(BaseModel):
    """Text of a single source page, used to back-map chunks to page numbers."""

    page_number: int
    text: str


class SourceDocument(BaseModel):
    """A document as handed over by the text extraction layer."""

    file_id: str
    file_name: str
    text: str
    pages: list[DocumentPage] = []
    active: bool = True


class TextWindow(BaseModel):
    """One window produced by the chunker.

    Attributes:
        index: Ordinal of the window among the emitted (non-blank) windows.
        start: Raw start offset of the window in the source text.
        end:   Raw end offset (exclusive).
        text:  Trimmed window text, never empty.
    """

    index: int
    start: int
    end: int
    text: str


class DocumentChunk(BaseModel):
    """An embedded chunk owned by the vector store.

    embedding is None only for chunks read from a legacy cache format that
    stored text without vectors. Such chunks trigger re-processing.
    """

    id: str
    file_id: str
    file_name: str
    text: str
    embedding: list[float] | None = None
    chunk_index: int
    page_numbers: list[int] = []


class CachedChunkSet(BaseModel):
    """Persisted chunk set of one document for one set of chunking parameters.

    timestamp is the write time in epoch milliseconds.
    """

    file_id: str
    chunk_size: int
    chunk_overlap: int
    version: int
    timestamp: int
    chunks: list[DocumentChunk]


class CacheEntryStats(BaseModel):
    key: str
    chunk_count: int
    age_ms: int
    size: int


class CacheStats(BaseModel):
    total_entries: int = 0
    total_size: int = 0
    total_size_mb: float = 0.0
    entries: list[CacheEntryStats] = []


class ChunkSuccess(BaseModel):
    status: Literal["success"] = "success"
    index: int
    chunk: DocumentChunk


class ChunkFailure(BaseModel):
    status: Literal["failure"] = "failure"
    index: int
    error: str


ChunkOutcome = ChunkSuccess | ChunkFailure


class IndexingReport(BaseModel):
    """Result of ensuring a document is indexed.

    Attributes:
        total_chunks: Number of chunks the document was split into (0 when served from cache or skipped).
        embedded:     Number of chunks now in the vector store for this document.
        failures:     Chunks whose embedding failed and were skipped.
        from_cache:   True if the chunk set was restored from the chunk cache.
        skipped:      True if the document already had embedded chunks and nothing was done.
        cache_warning: Set when the chunk set could not be written to the cache.
        registry_warning: Set when the document itself could not be persisted in the registry.
    """

    file_id: str
    file_name: str
    total_chunks: int = 0
    embedded: int = 0
    failures: list[ChunkFailure] = Field(default_factory=list)
    from_cache: bool = False
    skipped: bool = False
    cache_warning: str | None = None
    registry_warning: str | None = None


class RetrievalSource(BaseModel):
    """Citation entry for a chunk that made it into the context."""

    file_name: str
    similarity: float
    chunk_index: int
    page_numbers: list[int] = []


class RetrievalResult(BaseModel):
    context: str
    sources: list[RetrievalSource]


class AnswerResult(BaseModel):
    answer: str
    sources: list[RetrievalSource]
