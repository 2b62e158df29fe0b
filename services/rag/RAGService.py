import asyncio

from services.rag.DocumentIndexer import DocumentIndexer
from services.rag.DocumentRegistry import DocumentRegistry
from services.rag.PromptBuilder import build_rag_prompt
from services.rag.RetrievalEngine import RetrievalEngine
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors import NotFoundError, RetrievalFailure, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import AnswerResult, IndexingReport, SourceDocument


class RAGService:
    """Complete question-answering pipeline: index the active documents, retrieve, generate."""

    def __init__(
        self,
        helper_config: HelperConfig,
        registry: DocumentRegistry,
        indexer: DocumentIndexer,
        retrieval_engine: RetrievalEngine,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._registry = registry
        self._indexer = indexer
        self._retrieval = retrieval_engine
        self._llm_client = llm_client
        self._answer_language = helper_config.get_string_val("LLM_ANSWER_LANGUAGE", default="") or None

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def do_add_document(self, document: SourceDocument) -> IndexingReport:
        """Index a document and store it in the registry.

        The document is re-embedded when a document with the same id was
        indexed before, since its text may have changed.

        Raises:
            ValidationError: If the document has no text.
            DocumentProcessingFailure: If none of its chunks could be embedded.
        """
        already_known = self._is_registered(document.file_id)
        report = await self._indexer.do_ensure_indexed(document, force=already_known)

        result = await asyncio.to_thread(self._registry.register, document)
        if not result.is_ok:
            report.registry_warning = result.reason
        return report

    def _is_registered(self, file_id: str) -> bool:
        try:
            self._registry.get(file_id)
        except NotFoundError:
            return False
        return True

    def remove_document(self, file_id: str) -> None:
        """Delete a document with its indexed chunks and chunk cache entries.

        The index is only cleared once the registry delete has been persisted.

        Raises:
            NotFoundError: If the document is not registered.
            StorageFailure: If the registry could not be updated.
        """
        if not self._registry.delete(file_id):
            raise NotFoundError(f"Document '{file_id}' not found.")
        self._indexer.remove_document(file_id)

    ##########################################
    ################ ANSWER ##################
    ##########################################

    async def do_generate(self, question: str, context: str, metadata: dict) -> str:
        """Ask the answer model, grounding it in the retrieved context.

        Args:
            question (str): The user question.
            context (str): Context rendered by the retrieval engine.
            metadata (dict): {"activeFileCount", "fileNames", "totalChunks"}.

        Raises:
            GenerationFailure: If the answer backend fails.
        """
        prompt = build_rag_prompt(
            context=context,
            question=question,
            active_file_count=metadata.get("activeFileCount", 1),
            file_names=metadata.get("fileNames", []),
            answer_language=self._answer_language,
        )
        return await self._llm_client.do_chat([{"role": "user", "content": prompt}])

    async def do_answer(self, question: str, file_ids: list[str] | None = None) -> AnswerResult:
        """Answer a question from the given documents, or from all active ones.

        Documents without embedded chunks are indexed first.

        Raises:
            ValidationError: If the question is blank.
            NotFoundError: If a given file id is not registered.
            RetrievalFailure: If there is no document to answer from.
            DocumentProcessingFailure, GenerationFailure: Propagated from indexing and generation.
        """
        if not question.strip():
            raise ValidationError("The question must not be empty.")

        if file_ids:
            documents = [self._registry.get(file_id) for file_id in file_ids]
        else:
            documents = self._registry.list_documents(active_only=True)
        if not documents:
            raise RetrievalFailure("No active documents to answer from.", no_indexed_content=True)

        self.logging.info("Generating answer for: %r", question[:80])
        self.logging.info("Active files: %s", ", ".join(doc.file_name for doc in documents))

        for document in documents:
            report = await self._indexer.do_ensure_indexed(document)
            if report.failures:
                self.logging.warning("%d chunks of %s could not be embedded", len(report.failures), document.file_name)

        retrieval = await self._retrieval.do_retrieve(question, [doc.file_id for doc in documents])
        self.logging.info("Retrieved %d relevant chunks", len(retrieval.sources))

        metadata = {
            "activeFileCount": len(documents),
            "fileNames": [doc.file_name for doc in documents],
            "totalChunks": len(retrieval.sources),
        }
        answer = await self.do_generate(question, retrieval.context, metadata)
        self.logging.info("Answer generated", color="green")

        return AnswerResult(answer=answer, sources=retrieval.sources)
