from pydantic import BaseModel

from shared.models.conversation import Conversation
from shared.models.document import IndexingReport, RetrievalSource
from shared.models.search import HighlightSpan, SearchResult


class DocumentInfo(BaseModel):
    file_id: str
    file_name: str
    active: bool
    page_count: int
    char_count: int
    chunk_count: int


class DocumentUploadResponse(BaseModel):
    document: DocumentInfo
    report: IndexingReport


class DocumentListResponse(BaseModel):
    documents: list[DocumentInfo]
    total: int


class QueryResponse(BaseModel):
    question: str
    answer: str
    sources: list[RetrievalSource]


class SearchResultItem(SearchResult):
    highlights: list[HighlightSpan]


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResultItem]
    total: int


class ConversationListResponse(BaseModel):
    conversations: list[Conversation]
    total: int


class CachePruneResponse(BaseModel):
    removed: int
