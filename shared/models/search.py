"""Pydantic models for conversation search."""

from datetime import date
from enum import Enum

from pydantic import BaseModel

from shared.models.conversation import ConversationMessage


class MessageType(str, Enum):
    ALL = "all"
    USER = "user"
    AI = "ai"


class DateRange(str, Enum):
    ALL = "all"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    CUSTOM = "custom"


class SearchFilters(BaseModel):
    """Filter set applied to a conversation search.

    An empty conversation_ids list searches all conversations. The custom
    dates are only honoured when date_range is "custom" and are inclusive
    calendar days.
    """

    conversation_ids: list[str] = []
    message_type: MessageType = MessageType.ALL
    date_range: DateRange = DateRange.ALL
    custom_date_from: date | None = None
    custom_date_to: date | None = None


class SearchResult(BaseModel):
    """A single matching message. Recomputed per query, memoized by the search cache."""

    conversation_id: str
    conversation_title: str
    message_index: int
    message: ConversationMessage
    match_count: int
    preview: str


class HighlightSpan(BaseModel):
    """A run of preview text, flagged when it is part of a query term match."""

    text: str
    is_match: bool
