"""Chunk cache.

Persists embedded chunk sets in the key-value store so a document is only
embedded once per (file id, chunk size, overlap). Entries carry the cache
format version and their write time; a version mismatch or an entry older
than the TTL is deleted on read and reported as a miss.
"""

import re
import threading
import time
from typing import Callable

from pydantic import ValidationError as PydanticValidationError

from shared.clients.kv.KVStoreInterface import KVStoreInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import CacheEntryStats, CacheStats, CachedChunkSet, DocumentChunk
from shared.models.storage import StorageResult, StorageStatus

CACHE_KEY_PREFIX = "chunk-cache-"
_KEY_PATTERN = re.compile(
    r"^" + re.escape(CACHE_KEY_PREFIX) + r"(?P<file_id>.+)_v(?P<version>\d+)_(?P<chunk_size>\d+)_(?P<overlap>\d+)$"
)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChunkCacheService:
    """Versioned, age-limited cache of embedded chunk sets."""

    def __init__(
        self,
        helper_config: HelperConfig,
        kv_store: KVStoreInterface,
        version: int | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.logging = helper_config.get_logger()
        settings = helper_config.get_rag_settings()
        self._kv = kv_store
        self._version = version if version is not None else settings.chunk_cache_version
        self._max_age_ms = settings.chunk_cache_ttl_ms
        self._clock = clock
        self._lock = threading.Lock()

    ##########################################
    ################ KEYS ####################
    ##########################################

    def get_cache_key(self, file_id: str, chunk_size: int, overlap: int) -> str:
        """Build the storage key. Different chunking parameters or versions never collide."""
        return f"{CACHE_KEY_PREFIX}{file_id}_v{self._version}_{chunk_size}_{overlap}"

    @staticmethod
    def _parse_key(key: str) -> dict | None:
        match = _KEY_PATTERN.match(key)
        return match.groupdict() if match else None

    def _keys_for_file(self, file_id: str) -> list[str]:
        keys = []
        for key in self._kv.keys(prefix=f"{CACHE_KEY_PREFIX}{file_id}_v"):
            parsed = self._parse_key(key)
            if parsed and parsed["file_id"] == file_id:
                keys.append(key)
        return keys

    ##########################################
    ################ READ ####################
    ##########################################

    def get(self, file_id: str, chunk_size: int, overlap: int) -> list[DocumentChunk] | None:
        """Return the cached chunks for a document, or None on a miss.

        Stale entries (other version, older than the TTL, unreadable) are
        removed as a side effect and never returned.
        """
        key = self.get_cache_key(file_id, chunk_size, overlap)
        raw = self._kv.get(key)
        if raw is None:
            self._drop_other_versions(file_id)
            return None

        try:
            cached = CachedChunkSet.model_validate_json(raw)
        except PydanticValidationError as exc:
            self.logging.warning("[Cache] Unreadable entry for %s, removing: %s", file_id, exc.errors()[:1])
            self._remove(key)
            return None

        if cached.version != self._version:
            self.logging.info("[Cache] Version mismatch for %s (v%d != v%d), invalidating", file_id, cached.version, self._version)
            self._remove(key)
            return None

        age = self._clock() - cached.timestamp
        if age > self._max_age_ms:
            self.logging.info("[Cache] Expired cache for %s (%d days old)", file_id, round(age / (24 * 60 * 60 * 1000)))
            self._remove(key)
            return None

        self.logging.info("[Cache] HIT for %s (%d chunks)", file_id, len(cached.chunks))
        return cached.chunks

    ##########################################
    ################ WRITE ###################
    ##########################################

    def set(self, file_id: str, chunks: list[DocumentChunk], chunk_size: int, overlap: int) -> StorageResult:
        """Persist a document's chunk set.

        On a full store, entries older than half the TTL are pruned and the
        write is retried exactly once. A remaining failure is logged and
        returned, never raised: the caller's chunks stay usable in memory.

        Returns:
            StorageResult: The outcome of the (last) write attempt.
        """
        key = self.get_cache_key(file_id, chunk_size, overlap)
        with self._lock:
            result = self._kv.set(key, self._serialize(file_id, chunks, chunk_size, overlap))

        if result.status == StorageStatus.QUOTA_EXCEEDED:
            self.logging.warning("[Cache] Storage full, clearing entries older than %d ms...", self._max_age_ms // 2)
            self.prune_older_than(self._max_age_ms // 2)
            with self._lock:
                result = self._kv.set(key, self._serialize(file_id, chunks, chunk_size, overlap))
            if result.is_ok:
                self.logging.info("[Cache] Saved %d chunks for %s after cleanup", len(chunks), file_id)
                return result

        if not result.is_ok:
            self.logging.warning("[Cache] Failed to save %d chunks for %s: %s", len(chunks), file_id, result.reason)
            return result

        self.logging.info("[Cache] Saved %d chunks for %s", len(chunks), file_id)
        return result

    def _serialize(self, file_id: str, chunks: list[DocumentChunk], chunk_size: int, overlap: int) -> str:
        return CachedChunkSet(
            file_id=file_id,
            chunk_size=chunk_size,
            chunk_overlap=overlap,
            version=self._version,
            timestamp=self._clock(),
            chunks=chunks,
        ).model_dump_json()

    def _remove(self, key: str) -> None:
        with self._lock:
            self._kv.remove(key)

    ##########################################
    ############# INVALIDATION ###############
    ##########################################

    def invalidate(self, file_id: str) -> int:
        """Remove every cache entry of a document, across versions and chunking parameters.

        Returns:
            int: Number of removed entries.
        """
        with self._lock:
            keys = self._keys_for_file(file_id)
            for key in keys:
                self._kv.remove(key)
        self.logging.info("[Cache] Invalidated %d cache entries for %s", len(keys), file_id)
        return len(keys)

    def _drop_other_versions(self, file_id: str) -> None:
        with self._lock:
            stale = [k for k in self._keys_for_file(file_id) if int(self._parse_key(k)["version"]) != self._version]
            for key in stale:
                self._kv.remove(key)
        if stale:
            self.logging.info("[Cache] Removed %d entries of other cache versions for %s", len(stale), file_id)

    def prune_older_than(self, max_age_ms: int) -> int:
        """Remove entries older than max_age_ms, plus entries that cannot be parsed.

        Returns:
            int: Number of removed entries.
        """
        now = self._clock()
        removed = 0
        with self._lock:
            for key in self._kv.keys(prefix=CACHE_KEY_PREFIX):
                raw = self._kv.get(key)
                if raw is None:
                    continue
                try:
                    timestamp = CachedChunkSet.model_validate_json(raw).timestamp
                except PydanticValidationError:
                    timestamp = None
                if timestamp is None or now - timestamp > max_age_ms:
                    self._kv.remove(key)
                    removed += 1
        self.logging.info("[Cache] Cleared %d old cache entries", removed)
        return removed

    ##########################################
    ################ STATS ###################
    ##########################################

    def get_stats(self) -> CacheStats:
        """Summarise the cache: entry count, total size and per-entry details. Unreadable entries count towards size only."""
        now = self._clock()
        stats = CacheStats()
        for key in self._kv.keys(prefix=CACHE_KEY_PREFIX):
            raw = self._kv.get(key)
            if raw is None:
                continue
            stats.total_entries += 1
            stats.total_size += len(raw)
            try:
                cached = CachedChunkSet.model_validate_json(raw)
            except PydanticValidationError:
                continue
            stats.entries.append(
                CacheEntryStats(key=key, chunk_count=len(cached.chunks), age_ms=now - cached.timestamp, size=len(raw))
            )
        stats.total_size_mb = round(stats.total_size / (1024 * 1024), 2)
        return stats
