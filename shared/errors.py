"""Typed errors raised by the answerai core.

Every error carries a human-readable message that is safe to show to the
end user. Chunk-level embedding failures are collected rather than raised
(see DocumentIndexer); document- and query-level failures propagate. Cache
problems are not errors: a full store is reported as a StorageResult and an
invalid entry is a plain miss.
"""


class AnswerAIError(Exception):
    """Base class for all core errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AnswerAIError):
    """Invalid chunking parameters or empty input."""


class EmbeddingFailure(AnswerAIError):
    """The embedding backend could not produce a vector for a text."""


class DocumentProcessingFailure(AnswerAIError):
    """Not a single chunk of a document could be embedded."""


class RetrievalFailure(AnswerAIError):
    """Retrieval could not run: nothing indexed for the active files, or the query embedding failed."""

    def __init__(self, message: str, no_indexed_content: bool = False) -> None:
        super().__init__(message)
        self.no_indexed_content = no_indexed_content


class GenerationFailure(AnswerAIError):
    """The answer-generation backend failed."""


class NotFoundError(AnswerAIError):
    """A referenced document or conversation does not exist."""


class StorageFailure(AnswerAIError):
    """A document or conversation could not be persisted (store full or write error)."""
