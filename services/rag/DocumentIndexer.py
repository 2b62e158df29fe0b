"""Document indexing service.

Splits a document into chunks, restores them from the chunk cache when
possible and otherwise embeds every chunk through a bounded worker pool,
then writes the embedded chunks to the vector store and the chunk cache.
"""

import asyncio

from services.rag.ChunkCacheService import ChunkCacheService
from services.rag.Chunker import split_text
from services.rag.PageMapper import find_chunk_pages
from services.rag.VectorStore import VectorStore
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.errors import DocumentProcessingFailure, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import (
    ChunkFailure,
    ChunkOutcome,
    ChunkSuccess,
    DocumentChunk,
    IndexingReport,
    SourceDocument,
    TextWindow,
)


def make_chunk_id(file_id: str, chunk_index: int) -> str:
    """Build the chunk id. Stable across re-processing so a re-indexed chunk replaces its predecessor."""
    return f"{file_id}_chunk_{chunk_index}"


class DocumentIndexer:
    """Keeps the vector store populated with embedded chunks of the documents in use."""

    def __init__(
        self,
        helper_config: HelperConfig,
        vector_store: VectorStore,
        chunk_cache: ChunkCacheService,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = helper_config.get_rag_settings()
        self._store = vector_store
        self._cache = chunk_cache
        self._embed = embed_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_ensure_indexed(self, document: SourceDocument, force: bool = False) -> IndexingReport:
        """Make sure a document has embedded chunks in the vector store.

        Nothing happens if the document already has chunks that all carry
        embeddings. Chunks without embeddings (legacy cache format) trigger
        re-processing. With force=True the vector store and the chunk cache
        are bypassed and every chunk is embedded again.

        Args:
            document (SourceDocument): The document to index.
            force (bool): Re-embed even if chunks are present.

        Returns:
            IndexingReport: What was done, including per-chunk failures.

        Raises:
            ValidationError: If the document has no text.
            DocumentProcessingFailure: If not a single chunk could be embedded.
        """
        report = IndexingReport(file_id=document.file_id, file_name=document.file_name)
        chunk_size = self._settings.chunk_size
        overlap = self._settings.chunk_overlap

        if not force and self._store.has_embeddings(document.file_id):
            report.skipped = True
            report.embedded = len(self._store.chunks_for_files([document.file_id]))
            self.logging.debug("File already processed: %s (%d chunks with embeddings)", document.file_name, report.embedded)
            return report

        if not document.text.strip():
            raise ValidationError(f"Document '{document.file_name}' contains no text to index.")

        if not force:
            cached = self._cache.get(document.file_id, chunk_size, overlap)
            if cached and all(chunk.embedding for chunk in cached):
                self._store.replace_chunks(document.file_id, cached)
                report.from_cache = True
                report.embedded = len(cached)
                self.logging.info("Using cached chunks for %s (%d chunks)", document.file_name, len(cached), color="green")
                return report
            if cached:
                self.logging.info("Cached chunks for %s lack embeddings, re-processing...", document.file_name)

        windows = split_text(document.text, chunk_size, overlap)
        report.total_chunks = len(windows)
        self.logging.info("Processing %d chunks from %s", len(windows), document.file_name)

        outcomes = await self.do_embed_windows(document, windows)
        chunks = [outcome.chunk for outcome in outcomes if isinstance(outcome, ChunkSuccess)]
        report.failures = [outcome for outcome in outcomes if isinstance(outcome, ChunkFailure)]

        if not chunks:
            reason = report.failures[0].error if report.failures else "document produced no chunks"
            raise DocumentProcessingFailure(
                f"Failed to process document '{document.file_name}': none of {len(windows)} chunks could be embedded ({reason})."
            )

        self._store.replace_chunks(document.file_id, chunks)
        report.embedded = len(chunks)

        # serialising and persisting a whole chunk set can take a while on the file store
        result = await asyncio.to_thread(self._cache.set, document.file_id, chunks, chunk_size, overlap)
        if not result.is_ok:
            report.cache_warning = result.reason

        self.logging.info(
            "Processed %s: %d of %d chunks embedded, %d failed",
            document.file_name, len(chunks), len(windows), len(report.failures),
        )
        return report

    async def do_embed_windows(self, document: SourceDocument, windows: list[TextWindow]) -> list[ChunkOutcome]:
        """Embed all windows of a document with at most embed_concurrency calls in flight.

        The result is ordered by window index regardless of completion order.
        Cancelling the calling task cancels all pending embeddings.
        """
        sem = asyncio.Semaphore(self._settings.embed_concurrency)
        return list(
            await asyncio.gather(
                *[self._do_embed_window(document, window, len(windows), sem) for window in windows]
            )
        )

    async def _do_embed_window(
        self,
        document: SourceDocument,
        window: TextWindow,
        total: int,
        sem: asyncio.Semaphore,
    ) -> ChunkOutcome:
        async with sem:
            self.logging.debug("Creating embedding for chunk %d/%d of %s", window.index + 1, total, document.file_name)
            try:
                vector = await self._embed.do_embed_text(window.text)
            except Exception as exc:
                # the embedding backend may fail for any single chunk (network, auth, quota)
                self.logging.warning("Failed to embed chunk %d of %s: %s", window.index, document.file_name, exc)
                outcome: ChunkOutcome = ChunkFailure(index=window.index, error=str(exc))
            else:
                outcome = ChunkSuccess(
                    index=window.index,
                    chunk=DocumentChunk(
                        id=make_chunk_id(document.file_id, window.index),
                        file_id=document.file_id,
                        file_name=document.file_name,
                        text=window.text,
                        embedding=vector,
                        chunk_index=window.index,
                        page_numbers=find_chunk_pages(window.text, document.text, document.pages),
                    ),
                )

            # throttle while holding the slot so the pool as a whole respects the rate
            if self._settings.embed_throttle_seconds and window.index < total - 1:
                await asyncio.sleep(self._settings.embed_throttle_seconds)
            return outcome

    ##########################################
    ############### REMOVAL ##################
    ##########################################

    def remove_document(self, file_id: str) -> None:
        """Drop a document's chunks from the vector store and its chunk cache entries."""
        self._store.replace_chunks(file_id, [])
        self._cache.invalidate(file_id)
        self.logging.info("Removed indexed chunks of %s", file_id)
