"""Pytest configuration and fixtures for the answerai core tests."""

import logging
from datetime import datetime, timezone

import pytest

from services.conversations.ConversationStore import ConversationStore
from services.rag.ChunkCacheService import ChunkCacheService
from services.rag.DocumentIndexer import DocumentIndexer
from services.rag.DocumentRegistry import DocumentRegistry
from services.rag.RAGService import RAGService
from services.rag.RetrievalEngine import RetrievalEngine
from services.rag.VectorStore import VectorStore
from services.search.SearchService import SearchService
from shared.clients.kv.memory.KVStoreMemory import KVStoreMemory
from shared.errors import EmbeddingFailure
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.config import RagSettings

ALPHABET = "abcdefghijklmnopqrstuvwxyz"


# -------------------------------------------------------------------------
# Fakes
# -------------------------------------------------------------------------


class FakeEmbedClient:
    """Embeds a text as its letter histogram, so similar texts get similar vectors.

    Texts containing one of fail_on are rejected with EmbeddingFailure.
    """

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.fail_on = fail_on
        self.calls: list[str] = []

    async def do_embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise EmbeddingFailure(f"Failed to create embedding for '{text[:20]}'")
        lowered = text.lower()
        return [float(lowered.count(letter)) for letter in ALPHABET]


class FakeLLMClient:
    def __init__(self, answer: str = "The answer is 42."):
        self.answer = answer
        self.messages: list[list[dict]] = []

    async def do_chat(self, messages: list[dict]) -> str:
        self.messages.append(messages)
        return self.answer


class FakeClock:
    """Settable clock returning epoch milliseconds."""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance_days(self, days: float) -> None:
        self.now_ms += int(days * 24 * 60 * 60 * 1000)


# -------------------------------------------------------------------------
# Core fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def logger() -> ColorLogger:
    return ColorLogger(logging.getLogger("answerai.tests"))


@pytest.fixture
def rag_settings() -> RagSettings:
    return RagSettings(embed_throttle_seconds=0, timezone="UTC")


@pytest.fixture
def helper_config(logger, rag_settings) -> HelperConfig:
    return HelperConfig(logger=logger, rag_settings=rag_settings)


@pytest.fixture
def kv_store(helper_config) -> KVStoreMemory:
    return KVStoreMemory(helper_config=helper_config)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chunk_cache(helper_config, kv_store, clock) -> ChunkCacheService:
    return ChunkCacheService(helper_config=helper_config, kv_store=kv_store, clock=clock)


@pytest.fixture
def vector_store(helper_config) -> VectorStore:
    return VectorStore(helper_config=helper_config)


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def indexer(helper_config, vector_store, chunk_cache, embed_client) -> DocumentIndexer:
    return DocumentIndexer(
        helper_config=helper_config,
        vector_store=vector_store,
        chunk_cache=chunk_cache,
        embed_client=embed_client,
    )


@pytest.fixture
def retrieval_engine(helper_config, vector_store, embed_client) -> RetrievalEngine:
    return RetrievalEngine(helper_config=helper_config, vector_store=vector_store, embed_client=embed_client)


@pytest.fixture
def document_registry(helper_config, kv_store) -> DocumentRegistry:
    return DocumentRegistry(helper_config=helper_config, kv_store=kv_store)


@pytest.fixture
def rag_service(helper_config, document_registry, indexer, retrieval_engine, llm_client) -> RAGService:
    return RAGService(
        helper_config=helper_config,
        registry=document_registry,
        indexer=indexer,
        retrieval_engine=retrieval_engine,
        llm_client=llm_client,
    )


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def conversation_store(helper_config, kv_store, now) -> ConversationStore:
    return ConversationStore(helper_config=helper_config, kv_store=kv_store, clock=lambda: now)


@pytest.fixture
def search_service(helper_config, conversation_store, now) -> SearchService:
    return SearchService(helper_config=helper_config, conversation_store=conversation_store, clock=lambda: now)


@pytest.fixture
def make_embed_client():
    """Factory for embed fakes with custom failure markers."""
    return FakeEmbedClient
