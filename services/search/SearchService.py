"""Full-text search over conversation history.

A message matches when every query term occurs in it (case-insensitive
substring, AND semantics). Matches are ranked by their total number of term
occurrences and then by recency. Ranked lists are memoized in a FIFO
SearchCache that is cleared on every conversation mutation.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

import pytz

from services.conversations.ConversationStore import ConversationStore
from services.search.SearchCache import SearchCache
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import Conversation
from shared.models.search import DateRange, MessageType, SearchFilters, SearchResult

PREVIEW_LENGTH = 150

_PRESET_DAYS = {
    DateRange.LAST_7_DAYS: 7,
    DateRange.LAST_30_DAYS: 30,
    DateRange.LAST_90_DAYS: 90,
}

# the filter value "ai" addresses messages stored with the assistant role
_ROLE_FOR_TYPE = {
    MessageType.USER: "user",
    MessageType.AI: "assistant",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_terms(query: str) -> list[str]:
    return query.lower().split()


def count_occurrences(text: str, term: str) -> int:
    """Number of occurrences of term in text, overlapping ones included."""
    count = 0
    pos = text.find(term)
    while pos != -1:
        count += 1
        pos = text.find(term, pos + 1)
    return count


def make_preview(content: str) -> str:
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


def search_in_conversation(conversation: Conversation, query: str) -> list[SearchResult]:
    """All messages of one conversation containing every query term, in message order."""
    terms = normalize_terms(query)
    if not terms:
        return []

    results = []
    for index, message in enumerate(conversation.messages):
        content = message.content.lower()
        if not all(term in content for term in terms):
            continue
        results.append(
            SearchResult(
                conversation_id=conversation.id,
                conversation_title=conversation.title,
                message_index=index,
                message=message,
                match_count=sum(count_occurrences(content, term) for term in terms),
                preview=make_preview(message.content),
            )
        )
    return results


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class SearchService:
    def __init__(
        self,
        helper_config: HelperConfig,
        conversation_store: ConversationStore,
        cache: SearchCache | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.logging = helper_config.get_logger()
        settings = helper_config.get_rag_settings()
        self._store = conversation_store
        self._cache = cache if cache is not None else SearchCache(settings.search_cache_capacity)
        self._tz = pytz.timezone(settings.timezone)
        self._clock = clock
        conversation_store.add_listener(self.invalidate_cache)

    ##########################################
    ################ CACHE ###################
    ##########################################

    def invalidate_cache(self) -> None:
        """Drop every cached result list."""
        self._cache.clear()
        self.logging.debug("[Search] Cache cleared")

    @staticmethod
    def get_cache_key(terms: list[str], filters: SearchFilters) -> tuple:
        """Key over the normalized query and the effective filter set."""
        custom = filters.date_range == DateRange.CUSTOM
        return (
            " ".join(terms),
            tuple(sorted(set(filters.conversation_ids))),
            filters.message_type.value,
            filters.date_range.value,
            filters.custom_date_from.isoformat() if custom and filters.custom_date_from else None,
            filters.custom_date_to.isoformat() if custom and filters.custom_date_to else None,
        )

    ##########################################
    ############### FILTERS ##################
    ##########################################

    def _start_of_day(self, day: date) -> datetime:
        return self._tz.localize(datetime.combine(day, time.min))

    def _end_of_day(self, day: date) -> datetime:
        return self._tz.localize(datetime.combine(day, time.max))

    def get_date_bounds(self, filters: SearchFilters) -> tuple[datetime | None, datetime | None]:
        """Inclusive (lower, upper) timestamp bounds for the filter's date range.

        Preset ranges count back from now. A custom range spans from the start
        of its first day to the end of its last day in the configured timezone.
        """
        if filters.date_range == DateRange.CUSTOM:
            lower = self._start_of_day(filters.custom_date_from) if filters.custom_date_from else None
            upper = self._end_of_day(filters.custom_date_to) if filters.custom_date_to else None
            return lower, upper
        days = _PRESET_DAYS.get(filters.date_range)
        if days is None:
            return None, None
        return _aware(self._clock()) - timedelta(days=days), None

    ##########################################
    ################ SEARCH ##################
    ##########################################

    def search(self, query: str, filters: SearchFilters | None = None) -> list[SearchResult]:
        """Search all (or the selected) conversations.

        Args:
            query (str): Whitespace-separated terms; all must occur in a message.
            filters (SearchFilters | None): Conversation, role and date filters.

        Returns:
            list[SearchResult]: Ranked by match count, then most recent first.
                A blank query yields an empty list.
        """
        filters = filters or SearchFilters()
        terms = normalize_terms(query)
        if not terms:
            return []

        key = self.get_cache_key(terms, filters)
        cached = self._cache.get(key)
        if cached is not None:
            self.logging.debug("[Search] Cache HIT: %s", key[0][:60])
            return cached

        self.logging.debug("[Search] Cache MISS, executing search for: %s", key[0][:60])

        conversations = self._store.list_in_order()
        if filters.conversation_ids:
            wanted = set(filters.conversation_ids)
            conversations = [c for c in conversations if c.id in wanted]

        results: list[SearchResult] = []
        for conversation in conversations:
            results.extend(search_in_conversation(conversation, query))

        role = _ROLE_FOR_TYPE.get(filters.message_type)
        if role is not None:
            results = [r for r in results if r.message.role == role]

        lower, upper = self.get_date_bounds(filters)
        if lower is not None or upper is not None:
            results = [r for r in results if self._within(r.message.timestamp, lower, upper)]

        results.sort(key=self._rank_key)

        if self._cache.put(key, results):
            self.logging.debug("[Search] Cache full, evicted oldest entry")
        return list(results)

    @staticmethod
    def _within(timestamp: datetime | None, lower: datetime | None, upper: datetime | None) -> bool:
        if timestamp is None:
            return False
        timestamp = _aware(timestamp)
        if lower is not None and timestamp < lower:
            return False
        if upper is not None and timestamp > upper:
            return False
        return True

    @staticmethod
    def _rank_key(result: SearchResult) -> tuple:
        timestamp = result.message.timestamp
        recency = -_aware(timestamp).timestamp() if timestamp is not None else 0.0
        return (-result.match_count, timestamp is None, recency)
