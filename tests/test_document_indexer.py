"""Tests for document (re)processing through the embedding worker pool."""

import asyncio
import logging
import threading

import pytest

from services.rag.ChunkCacheService import ChunkCacheService
from services.rag.DocumentIndexer import DocumentIndexer
from services.rag.VectorStore import VectorStore
from shared.clients.kv.memory.KVStoreMemory import KVStoreMemory
from shared.errors import DocumentProcessingFailure, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RagSettings
from shared.models.document import DocumentChunk, DocumentPage, SourceDocument


def _document(text: str, file_id: str = "doc", pages=None) -> SourceDocument:
    return SourceDocument(file_id=file_id, file_name=f"{file_id}.pdf", text=text, pages=pages or [])


def _letters(length: int) -> str:
    return "".join(chr(97 + i % 26) for i in range(length))


async def test_indexes_all_chunks_in_order(indexer, vector_store, embed_client):
    report = await indexer.do_ensure_indexed(_document(_letters(2500)))

    assert report.total_chunks == 4
    assert report.embedded == 4
    assert report.failures == []
    assert not report.from_cache and not report.skipped
    chunks = vector_store.chunks_for_files(["doc"])
    assert [c.id for c in chunks] == [f"doc_chunk_{i}" for i in range(4)]
    assert all(c.embedding for c in chunks)
    assert len(embed_client.calls) == 4


async def test_already_indexed_document_is_skipped(indexer, embed_client):
    await indexer.do_ensure_indexed(_document(_letters(2500)))
    report = await indexer.do_ensure_indexed(_document(_letters(2500)))

    assert report.skipped
    assert report.embedded == 4
    assert len(embed_client.calls) == 4


async def test_cached_chunks_are_restored_without_embedding(helper_config, chunk_cache, indexer, embed_client):
    await indexer.do_ensure_indexed(_document(_letters(2500)))

    fresh_store = VectorStore(helper_config=helper_config)
    fresh = DocumentIndexer(helper_config, fresh_store, chunk_cache, embed_client)
    report = await fresh.do_ensure_indexed(_document(_letters(2500)))

    assert report.from_cache
    assert report.embedded == 4
    assert len(fresh_store) == 4
    assert len(embed_client.calls) == 4


async def test_cached_chunks_without_embeddings_are_reprocessed(chunk_cache, indexer, embed_client, vector_store):
    legacy = [
        DocumentChunk(id="doc_chunk_0", file_id="doc", file_name="doc.pdf", text="legacy text", chunk_index=0)
    ]
    chunk_cache.set("doc", legacy, 1000, 200)

    report = await indexer.do_ensure_indexed(_document("fresh document text"))

    assert not report.from_cache
    assert report.embedded == 1
    assert vector_store.chunks_for_files(["doc"])[0].text == "fresh document text"
    assert embed_client.calls == ["fresh document text"]


async def test_failed_chunks_are_reported_and_skipped(helper_config, vector_store, chunk_cache, make_embed_client):
    embed_client = make_embed_client(fail_on=("FAIL",))
    indexer = DocumentIndexer(helper_config, vector_store, chunk_cache, embed_client)
    text = "a" * 1850 + "FAIL" + "a" * 646

    report = await indexer.do_ensure_indexed(_document(text))

    assert report.total_chunks == 4
    assert report.embedded == 3
    assert [f.index for f in report.failures] == [2]
    assert "Failed to create embedding" in report.failures[0].error
    assert [c.chunk_index for c in vector_store.chunks_for_files(["doc"])] == [0, 1, 3]
    assert len(chunk_cache.get("doc", 1000, 200)) == 3


async def test_no_embedded_chunk_raises(helper_config, vector_store, chunk_cache, make_embed_client):
    indexer = DocumentIndexer(helper_config, vector_store, chunk_cache, make_embed_client(fail_on=("a",)))

    with pytest.raises(DocumentProcessingFailure):
        await indexer.do_ensure_indexed(_document(_letters(2500)))
    assert vector_store.chunks_for_files(["doc"]) == []
    assert chunk_cache.get("doc", 1000, 200) is None


async def test_blank_document_is_rejected(indexer):
    with pytest.raises(ValidationError):
        await indexer.do_ensure_indexed(_document("   \n  "))


async def test_page_numbers_are_attached(indexer, vector_store):
    pages = [
        DocumentPage(page_number=1, text="First page talks about the budget for the coming year."),
        DocumentPage(page_number=2, text="Second page lists the people responsible for each project."),
    ]
    text = "\n\n".join(p.text for p in pages)

    await indexer.do_ensure_indexed(_document(text, pages=pages))

    assert vector_store.chunks_for_files(["doc"])[0].page_numbers == [1, 2]


async def test_cache_write_failure_is_a_warning(helper_config, vector_store, embed_client, clock):
    tiny_store = KVStoreMemory(helper_config, max_bytes=10)
    cache = ChunkCacheService(helper_config=helper_config, kv_store=tiny_store, clock=clock)
    indexer = DocumentIndexer(helper_config, vector_store, cache, embed_client)

    report = await indexer.do_ensure_indexed(_document(_letters(1500)))

    assert report.embedded == 2
    assert report.cache_warning
    assert len(vector_store) == 2


async def test_force_reembeds(indexer, embed_client):
    await indexer.do_ensure_indexed(_document("version one"))
    report = await indexer.do_ensure_indexed(_document("version two"), force=True)

    assert not report.skipped and not report.from_cache
    assert embed_client.calls == ["version one", "version two"]


async def test_remove_document(indexer, vector_store, chunk_cache):
    await indexer.do_ensure_indexed(_document(_letters(1500)))

    indexer.remove_document("doc")

    assert vector_store.chunks_for_files(["doc"]) == []
    assert chunk_cache.get("doc", 1000, 200) is None


class _SlowEmbedClient:
    """Records concurrency; earlier texts take longer so completion order is reversed."""

    def __init__(self, total: int):
        self.total = total
        self.in_flight = 0
        self.max_in_flight = 0
        self.completed: list[str] = []

    async def do_embed_text(self, text: str) -> list[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        position = int(text.split()[0])
        await asyncio.sleep(0.001 * (self.total - position))
        self.in_flight -= 1
        self.completed.append(text)
        return [1.0, float(position)]


async def test_worker_pool_bounds_concurrency_and_keeps_order(logger, chunk_cache, clock):
    settings = RagSettings(chunk_size=10, chunk_overlap=0, embed_concurrency=3, embed_throttle_seconds=0)
    config = HelperConfig(logger=logger, rag_settings=settings)
    store = VectorStore(helper_config=config)
    embed_client = _SlowEmbedClient(total=8)
    indexer = DocumentIndexer(config, store, chunk_cache, embed_client)
    text = "".join(f"{i} xxxxxxx" + " " for i in range(8))

    report = await indexer.do_ensure_indexed(_document(text))

    assert report.embedded == 8
    assert embed_client.max_in_flight == 3
    assert [c.chunk_index for c in store.chunks_for_files(["doc"])] == list(range(8))
    assert [c.embedding[1] for c in store.chunks_for_files(["doc"])] == [float(i) for i in range(8)]


async def test_cancellation_stops_pending_embeddings(indexer, vector_store):
    started = asyncio.Event()

    class _BlockingEmbedClient:
        async def do_embed_text(self, text: str) -> list[float]:
            started.set()
            await asyncio.sleep(3600)
            return [1.0]

    indexer._embed = _BlockingEmbedClient()
    task = asyncio.create_task(indexer.do_ensure_indexed(_document(_letters(2500))))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert vector_store.chunks_for_files(["doc"]) == []


async def test_cache_hit_logs_with_plain_logger_at_info(chunk_cache, embed_client, caplog):
    config = HelperConfig(logger=logging.getLogger("answerai.plain"), rag_settings=RagSettings(embed_throttle_seconds=0))
    first = DocumentIndexer(config, VectorStore(helper_config=config), chunk_cache, embed_client)
    second = DocumentIndexer(config, VectorStore(helper_config=config), chunk_cache, embed_client)

    with caplog.at_level(logging.INFO, logger="answerai.plain"):
        await first.do_ensure_indexed(_document(_letters(2500)))
        report = await second.do_ensure_indexed(_document(_letters(2500)))

    assert report.from_cache
    hit = next(r for r in caplog.records if r.getMessage().startswith("Using cached chunks"))
    assert hit.color == "green"


async def test_chunk_set_is_persisted_off_the_event_loop(indexer, chunk_cache, rag_settings, monkeypatch):
    loop_thread = threading.get_ident()
    writer_threads = []
    original_set = chunk_cache.set

    def recording_set(*args, **kwargs):
        writer_threads.append(threading.get_ident())
        return original_set(*args, **kwargs)

    monkeypatch.setattr(chunk_cache, "set", recording_set)

    await indexer.do_ensure_indexed(_document(_letters(1500)))

    assert len(writer_threads) == 1
    assert writer_threads[0] != loop_thread
    assert len(chunk_cache.get("doc", rag_settings.chunk_size, rag_settings.chunk_overlap)) == 2
