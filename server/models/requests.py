from pydantic import BaseModel, Field

from shared.models.conversation import DEFAULT_CONVERSATION_TITLE, ConversationMessage
from shared.models.document import DocumentPage
from shared.models.search import SearchFilters


class DocumentUploadRequest(BaseModel):
    """Extracted text of an uploaded document. A file id is generated when none is given."""

    file_id: str | None = None
    file_name: str
    text: str
    pages: list[DocumentPage] = []
    active: bool = True


class DocumentActiveRequest(BaseModel):
    active: bool


class QueryRequest(BaseModel):
    question: str
    file_ids: list[str] | None = None


class SearchRequest(BaseModel):
    query: str
    filters: SearchFilters = Field(default_factory=SearchFilters)


class ConversationCreateRequest(BaseModel):
    title: str = DEFAULT_CONVERSATION_TITLE
    active_file_ids: list[str] = []


class ConversationUpdateRequest(BaseModel):
    title: str | None = None
    messages: list[ConversationMessage] | None = None
    active_file_ids: list[str] | None = None


class CachePruneRequest(BaseModel):
    max_age_days: float | None = Field(default=None, ge=0)
