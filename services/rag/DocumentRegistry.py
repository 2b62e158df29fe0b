"""Registry of uploaded documents.

Keeps the extracted text, page texts and the active flag of every uploaded
document as one JSON list in the key-value store, so the set of active
documents survives a restart and can be resolved by id.
"""

import threading

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from shared.clients.kv.KVStoreInterface import KVStoreInterface
from shared.errors import NotFoundError, StorageFailure
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import SourceDocument
from shared.models.storage import StorageResult

FILES_STORAGE_KEY = "answerai_files"

_DOCUMENT_LIST = TypeAdapter(list[SourceDocument])


class DocumentRegistry:
    def __init__(self, helper_config: HelperConfig, kv_store: KVStoreInterface) -> None:
        self.logging = helper_config.get_logger()
        self._kv = kv_store
        self._lock = threading.Lock()

    ##########################################
    ############### INTERNAL #################
    ##########################################

    def _load(self) -> list[SourceDocument]:
        raw = self._kv.get(FILES_STORAGE_KEY)
        if not raw:
            return []
        try:
            return _DOCUMENT_LIST.validate_json(raw)
        except PydanticValidationError as e:
            self.logging.error("Stored document list is unreadable, starting empty: %s", e)
            return []

    def _store(self, documents: list[SourceDocument]) -> StorageResult:
        result = self._kv.set(FILES_STORAGE_KEY, _DOCUMENT_LIST.dump_json(documents).decode("utf-8"))
        if not result.is_ok:
            self.logging.warning("Failed to persist document list: %s", result.reason)
        return result

    ##########################################
    ############### PUBLIC API ###############
    ##########################################

    def register(self, document: SourceDocument) -> StorageResult:
        """Add a document, or replace the stored one with the same file id."""
        with self._lock:
            documents = [doc for doc in self._load() if doc.file_id != document.file_id]
            documents.append(document)
            result = self._store(documents)
        if result.is_ok:
            self.logging.info("Document saved: %s (%s)", document.file_name, document.file_id)
        return result

    def get(self, file_id: str) -> SourceDocument:
        """Raises:
            NotFoundError: If no document with this id is registered.
        """
        for document in self._load():
            if document.file_id == file_id:
                return document
        raise NotFoundError(f"Document '{file_id}' not found.")

    def list_documents(self, active_only: bool = False) -> list[SourceDocument]:
        documents = self._load()
        if active_only:
            return [doc for doc in documents if doc.active]
        return documents

    def set_active(self, file_id: str, active: bool) -> SourceDocument:
        """Toggle whether a document takes part in answering questions.

        Raises:
            NotFoundError: If no document with this id is registered.
            StorageFailure: If the changed flag could not be persisted.
        """
        with self._lock:
            documents = self._load()
            document = next((doc for doc in documents if doc.file_id == file_id), None)
            if document is None:
                raise NotFoundError(f"Document '{file_id}' not found.")
            document.active = active
            result = self._store(documents)
        if not result.is_ok:
            raise StorageFailure(f"Could not update document '{file_id}': {result.reason}")
        self.logging.info("Document %s active state updated to: %s", file_id, active)
        return document

    def delete(self, file_id: str) -> bool:
        """Remove a document from the registry. Returns False if it was not registered.

        Raises:
            StorageFailure: If the shortened document list could not be persisted.
        """
        with self._lock:
            documents = self._load()
            remaining = [doc for doc in documents if doc.file_id != file_id]
            if len(remaining) == len(documents):
                return False
            result = self._store(remaining)
        if not result.is_ok:
            raise StorageFailure(f"Could not delete document '{file_id}': {result.reason}")
        self.logging.info("Document deleted: %s", file_id)
        return True
