"""Pydantic models for stored conversations."""

from datetime import datetime

from pydantic import BaseModel

DEFAULT_CONVERSATION_TITLE = "New Conversation"


class ConversationMessage(BaseModel):
    role: str
    content: str
    timestamp: datetime | None = None


class Conversation(BaseModel):
    id: str
    title: str = DEFAULT_CONVERSATION_TITLE
    created_at: datetime
    updated_at: datetime
    messages: list[ConversationMessage] = []
    active_file_ids: list[str] = []
