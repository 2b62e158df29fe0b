"""FastAPI application entry point for answerai-core."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.kv.KVStoreManager import KVStoreManager
from services.rag.ChunkCacheService import ChunkCacheService
from services.rag.DocumentIndexer import DocumentIndexer
from services.rag.DocumentRegistry import DocumentRegistry
from services.rag.RAGService import RAGService
from services.rag.RetrievalEngine import RetrievalEngine
from services.rag.VectorStore import VectorStore
from services.conversations.ConversationStore import ConversationStore
from services.search.SearchService import SearchService
from server.core.error_handlers import register_error_handlers
from server.routers.DocumentRouter import router as document_router
from server.routers.QueryRouter import router as query_router
from server.routers.SearchRouter import router as search_router
from server.routers.ConversationRouter import router as conversation_router
from server.routers.CacheRouter import router as cache_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    helper_config = HelperConfig(logger=logging)
    app.state.helper_config = helper_config

    kv_store = KVStoreManager(helper_config=helper_config).get_store()
    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [embed_client, llm_client]:
        await client.boot()
    logging.info("All clients booted successfully.")

    app.state.kv_store = kv_store
    app.state.embed_client = embed_client
    app.state.llm_client = llm_client

    app.state.vector_store = VectorStore(helper_config=helper_config)
    app.state.chunk_cache = ChunkCacheService(helper_config=helper_config, kv_store=kv_store)
    app.state.document_registry = DocumentRegistry(helper_config=helper_config, kv_store=kv_store)
    indexer = DocumentIndexer(
        helper_config=helper_config,
        vector_store=app.state.vector_store,
        chunk_cache=app.state.chunk_cache,
        embed_client=embed_client,
    )
    retrieval_engine = RetrievalEngine(
        helper_config=helper_config,
        vector_store=app.state.vector_store,
        embed_client=embed_client,
    )
    app.state.rag_service = RAGService(
        helper_config=helper_config,
        registry=app.state.document_registry,
        indexer=indexer,
        retrieval_engine=retrieval_engine,
        llm_client=llm_client,
    )
    app.state.conversation_store = ConversationStore(helper_config=helper_config, kv_store=kv_store)
    app.state.search_service = SearchService(
        helper_config=helper_config,
        conversation_store=app.state.conversation_store,
    )

    await check_connections(embed_client, llm_client)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [embed_client, llm_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="answerai-core",
    description=(
        "Document question answering over uploaded documents. "
        "Documents are chunked, embedded and held in an in-memory vector store; "
        "questions are answered via POST /query from the most similar chunks. "
        "Conversation history is searchable via POST /search."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(document_router)
app.include_router(query_router)
app.include_router(search_router)
app.include_router(conversation_router)
app.include_router(cache_router)


async def check_connections(
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
) -> None:
    """Check connectivity to the embedding and answer backends on startup.

    Raises:
        Exception: If one of them is not reachable. Neither indexing nor answering works without them.
    """
    for client in [embed_client, llm_client]:
        try:
            result: httpx.Response = await client.do_healthcheck()
        except httpx.HTTPError as e:
            raise Exception(
                f"{client.get_client_type().upper()} client '{client.__class__.__name__}' is not reachable: {e}"
            ) from e
        if not result.is_success:
            raise Exception(
                f"{client.get_client_type().upper()} client '{client.__class__.__name__}' is not reachable "
                f"(status {result.status_code})."
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting answerai-core API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
