"""Persistent store of chat conversations.

Conversations live in the key-value store as one JSON object keyed by
conversation id, next to a separate list holding the display order (most
recently saved first) and the id of the active conversation. Every mutation
is announced to registered listeners, which the search service uses to drop
its result cache.
"""

import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from shared.clients.kv.KVStoreInterface import KVStoreInterface
from shared.errors import NotFoundError, StorageFailure
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import DEFAULT_CONVERSATION_TITLE, Conversation
from shared.models.storage import StorageResult

CONVERSATIONS_KEY = "answerai_conversations"
ACTIVE_ID_KEY = "answerai_active_conversation"
ORDER_KEY = "answerai_conversation_order"

AUTO_TITLE_LENGTH = 50

_CONVERSATION_MAP = TypeAdapter(dict[str, Conversation])
_ORDER_LIST = TypeAdapter(list[str])


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_conversation_id() -> str:
    return f"conv_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def auto_title(content: str) -> str:
    """First 50 characters of a message, with an ellipsis when cut."""
    title = content[:AUTO_TITLE_LENGTH]
    return title + "..." if len(content) > AUTO_TITLE_LENGTH else title


class ConversationStore:
    def __init__(
        self,
        helper_config: HelperConfig,
        kv_store: KVStoreInterface,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._kv = kv_store
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    ##########################################
    ############### LISTENERS ################
    ##########################################

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked after every create, save, delete and clear."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in self._listeners:
            callback()

    ##########################################
    ############### INTERNAL #################
    ##########################################

    def _load_all(self) -> dict[str, Conversation]:
        raw = self._kv.get(CONVERSATIONS_KEY)
        if not raw:
            return {}
        try:
            return _CONVERSATION_MAP.validate_json(raw)
        except PydanticValidationError as e:
            self.logging.error("Error loading conversations: %s", e)
            return {}

    def _load_order(self) -> list[str]:
        raw = self._kv.get(ORDER_KEY)
        if not raw:
            return []
        try:
            return _ORDER_LIST.validate_json(raw)
        except PydanticValidationError as e:
            self.logging.error("Error loading conversation order: %s", e)
            return []

    def _store(self, conversations: dict[str, Conversation], order: list[str]) -> StorageResult:
        result = self._kv.set(CONVERSATIONS_KEY, _CONVERSATION_MAP.dump_json(conversations).decode("utf-8"))
        if not result.is_ok:
            self.logging.warning("Error saving conversations: %s", result.reason)
            return result
        order_result = self._kv.set(ORDER_KEY, _ORDER_LIST.dump_json(order).decode("utf-8"))
        if not order_result.is_ok:
            self.logging.warning("Error saving conversation order: %s", order_result.reason)
        return order_result

    ##########################################
    ############### PUBLIC API ###############
    ##########################################

    def create(self, title: str = DEFAULT_CONVERSATION_TITLE, active_file_ids: list[str] | None = None) -> Conversation:
        """Create an empty conversation, put it on top of the order and make it the active one.

        Raises:
            StorageFailure: If the new conversation could not be persisted.
        """
        now = self._clock()
        conversation = Conversation(
            id=generate_conversation_id(),
            title=title,
            created_at=now,
            updated_at=now,
            active_file_ids=active_file_ids or [],
        )
        with self._lock:
            conversations = self._load_all()
            conversations[conversation.id] = conversation
            order = [conversation.id] + self._load_order()
            result = self._store(conversations, order)
            if not result.is_ok:
                raise StorageFailure(f"Could not create conversation: {result.reason}")
            self.set_active_id(conversation.id)
        self.logging.debug("Created conversation %s", conversation.id)
        self._notify()
        return conversation

    def save(self, conversation: Conversation) -> StorageResult:
        """Insert or update a conversation.

        Bumps updated_at, gives a still default-titled conversation the title
        of its first user message and moves it to the top of the order. The
        passed object is updated in place.
        """
        conversation.updated_at = self._clock()
        if conversation.title == DEFAULT_CONVERSATION_TITLE:
            first_user_message = next((m for m in conversation.messages if m.role == "user"), None)
            if first_user_message is not None:
                conversation.title = auto_title(first_user_message.content)

        with self._lock:
            conversations = self._load_all()
            conversations[conversation.id] = conversation
            order = [conversation.id] + [cid for cid in self._load_order() if cid != conversation.id]
            result = self._store(conversations, order)
        self._notify()
        return result

    def load(self, conversation_id: str) -> Conversation:
        """Raises:
            NotFoundError: If the conversation does not exist.
        """
        conversation = self._load_all().get(conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation '{conversation_id}' not found.")
        return conversation

    def delete(self, conversation_id: str) -> bool:
        """Delete a conversation. Returns False if it did not exist.

        Raises:
            StorageFailure: If the remaining conversations could not be persisted.
        """
        with self._lock:
            conversations = self._load_all()
            if conversations.pop(conversation_id, None) is None:
                return False
            order = [cid for cid in self._load_order() if cid != conversation_id]
            result = self._store(conversations, order)
            if not result.is_ok:
                raise StorageFailure(f"Could not delete conversation '{conversation_id}': {result.reason}")
            if self.get_active_id() == conversation_id:
                self._kv.remove(ACTIVE_ID_KEY)
        self._notify()
        return True

    def list_in_order(self) -> list[Conversation]:
        """All conversations, most recently saved first."""
        conversations = self._load_all()
        return [conversations[cid] for cid in self._load_order() if cid in conversations]

    def list_all(self) -> list[Conversation]:
        """All conversations in storage order, including any missing from the order list."""
        return list(self._load_all().values())

    def clear_all(self) -> None:
        with self._lock:
            for key in (CONVERSATIONS_KEY, ACTIVE_ID_KEY, ORDER_KEY):
                self._kv.remove(key)
        self.logging.info("All conversations cleared")
        self._notify()

    def get_active_id(self) -> str | None:
        return self._kv.get(ACTIVE_ID_KEY)

    def set_active_id(self, conversation_id: str | None) -> None:
        if conversation_id:
            self._kv.set(ACTIVE_ID_KEY, conversation_id)
        else:
            self._kv.remove(ACTIVE_ID_KEY)
