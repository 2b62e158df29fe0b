"""Tests for the versioned, age-limited chunk cache."""

from services.rag.ChunkCacheService import ChunkCacheService
from shared.clients.kv.memory.KVStoreMemory import KVStoreMemory
from shared.models.document import DocumentChunk
from shared.models.storage import StorageStatus


def _chunks(file_id: str, count: int = 3, text_length: int = 20) -> list[DocumentChunk]:
    return [
        DocumentChunk(
            id=f"{file_id}_chunk_{i}",
            file_id=file_id,
            file_name=f"{file_id}.pdf",
            text=f"chunk {i} " + "x" * text_length,
            embedding=[0.1 * i, 0.2, 0.3],
            chunk_index=i,
            page_numbers=[i + 1],
        )
        for i in range(count)
    ]


def test_cache_key_contains_version_and_parameters(chunk_cache):
    assert chunk_cache.get_cache_key("file-1", 1000, 200) == "chunk-cache-file-1_v1_1000_200"


def test_round_trip(chunk_cache):
    chunks = _chunks("file-1")
    assert chunk_cache.set("file-1", chunks, 1000, 200).is_ok

    assert chunk_cache.get("file-1", 1000, 200) == chunks


def test_different_parameters_miss(chunk_cache):
    chunk_cache.set("file-1", _chunks("file-1"), 1000, 200)

    assert chunk_cache.get("file-1", 1000, 100) is None
    assert chunk_cache.get("file-1", 500, 200) is None
    assert chunk_cache.get("file-2", 1000, 200) is None


def test_expired_entry_is_a_miss_and_removed(chunk_cache, kv_store, clock):
    chunk_cache.set("file-1", _chunks("file-1"), 1000, 200)
    clock.advance_days(8)

    assert chunk_cache.get("file-1", 1000, 200) is None
    assert kv_store.keys(prefix="chunk-cache-") == []


def test_entry_within_ttl_is_a_hit(chunk_cache, clock):
    chunk_cache.set("file-1", _chunks("file-1"), 1000, 200)
    clock.advance_days(6)

    assert chunk_cache.get("file-1", 1000, 200) is not None


def test_version_bump_invalidates_existing_entries(helper_config, kv_store, clock):
    old = ChunkCacheService(helper_config=helper_config, kv_store=kv_store, version=1, clock=clock)
    old.set("file-1", _chunks("file-1"), 1000, 200)
    old.set("file-2", _chunks("file-2"), 1000, 200)

    new = ChunkCacheService(helper_config=helper_config, kv_store=kv_store, version=2, clock=clock)

    assert new.get("file-1", 1000, 200) is None
    assert new.get("file-2", 1000, 200) is None
    assert kv_store.keys(prefix="chunk-cache-") == []


def test_entry_with_wrong_embedded_version_is_removed(chunk_cache, kv_store, helper_config, clock):
    other = ChunkCacheService(helper_config=helper_config, kv_store=kv_store, version=3, clock=clock)
    # write a v3 payload under the v1 key
    kv_store.set(chunk_cache.get_cache_key("file-1", 1000, 200), other._serialize("file-1", _chunks("file-1"), 1000, 200))

    assert chunk_cache.get("file-1", 1000, 200) is None
    assert kv_store.keys(prefix="chunk-cache-") == []


def test_unreadable_entry_is_a_miss(chunk_cache, kv_store):
    key = chunk_cache.get_cache_key("file-1", 1000, 200)
    kv_store.set(key, "{not json")

    assert chunk_cache.get("file-1", 1000, 200) is None
    assert kv_store.get(key) is None


def test_invalidate_removes_all_entries_of_a_file(chunk_cache, kv_store):
    chunk_cache.set("file-1", _chunks("file-1"), 1000, 200)
    chunk_cache.set("file-1", _chunks("file-1"), 500, 100)
    chunk_cache.set("file-10", _chunks("file-10"), 1000, 200)

    assert chunk_cache.invalidate("file-1") == 2
    assert kv_store.keys(prefix="chunk-cache-") == ["chunk-cache-file-10_v1_1000_200"]


def test_prune_older_than(chunk_cache, clock, kv_store):
    chunk_cache.set("old", _chunks("old"), 1000, 200)
    clock.advance_days(5)
    chunk_cache.set("new", _chunks("new"), 1000, 200)
    kv_store.set("chunk-cache-broken_v1_1000_200", "garbage")

    removed = chunk_cache.prune_older_than(3 * 24 * 60 * 60 * 1000)

    assert removed == 2
    assert kv_store.keys(prefix="chunk-cache-") == ["chunk-cache-new_v1_1000_200"]


def test_quota_exceeded_prunes_half_ttl_and_retries(helper_config, clock):
    sample = ChunkCacheService(
        helper_config=helper_config, kv_store=KVStoreMemory(helper_config), clock=clock
    )
    entry_size = len("chunk-cache-doc-a_v1_1000_200") + len(sample._serialize("doc-a", _chunks("doc-a"), 1000, 200))

    store = KVStoreMemory(helper_config, max_bytes=int(entry_size * 1.5))
    cache = ChunkCacheService(helper_config=helper_config, kv_store=store, clock=clock)
    assert cache.set("doc-a", _chunks("doc-a"), 1000, 200).is_ok

    # older than half the TTL, so it gets pruned to make room
    clock.advance_days(4)
    result = cache.set("doc-b", _chunks("doc-b"), 1000, 200)

    assert result.is_ok
    assert cache.get("doc-a", 1000, 200) is None
    assert cache.get("doc-b", 1000, 200) is not None


def test_quota_exceeded_twice_is_reported_not_raised(helper_config, clock):
    store = KVStoreMemory(helper_config, max_bytes=10)
    cache = ChunkCacheService(helper_config=helper_config, kv_store=store, clock=clock)

    result = cache.set("doc-a", _chunks("doc-a"), 1000, 200)

    assert result.status == StorageStatus.QUOTA_EXCEEDED
    assert store.keys() == []


def test_stats(chunk_cache, clock):
    chunk_cache.set("file-1", _chunks("file-1", count=2), 1000, 200)
    clock.advance_days(1)
    chunk_cache.set("file-2", _chunks("file-2", count=4), 1000, 200)

    stats = chunk_cache.get_stats()

    assert stats.total_entries == 2
    assert stats.total_size == sum(entry.size for entry in stats.entries)
    by_key = {entry.key: entry for entry in stats.entries}
    assert by_key["chunk-cache-file-1_v1_1000_200"].chunk_count == 2
    assert by_key["chunk-cache-file-1_v1_1000_200"].age_ms == 24 * 60 * 60 * 1000
    assert by_key["chunk-cache-file-2_v1_1000_200"].age_ms == 0
