"""Unit tests for the persistent asset cache."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from story_reel.backend.storage.asset_cache import AssetCacheStore, StorageConflict
from story_reel.common.models import AssetKind

DIGEST = "0cc175b9c0f1b6a831c399e269772661"


class TestLookupAndStore:
    def test_lookup_miss_returns_none(self, cache_store) -> None:
        assert cache_store.lookup(AssetKind.IMAGE, DIGEST) is None

    def test_store_then_lookup(self, cache_store) -> None:
        cache_store.store(AssetKind.IMAGE, DIGEST, "data:image/png;base64,AAAA")

        assert cache_store.lookup(AssetKind.IMAGE, DIGEST) == "data:image/png;base64,AAAA"

    def test_kind_is_part_of_key(self, cache_store) -> None:
        cache_store.store(AssetKind.IMAGE, DIGEST, "image-ref")
        cache_store.store(AssetKind.AUDIO, DIGEST, "audio-ref")

        assert cache_store.lookup(AssetKind.IMAGE, DIGEST) == "image-ref"
        assert cache_store.lookup(AssetKind.AUDIO, DIGEST) == "audio-ref"
        assert cache_store.count() == 2

    def test_duplicate_store_conflicts_and_keeps_first(self, cache_store) -> None:
        cache_store.store(AssetKind.AUDIO, DIGEST, "first")

        with pytest.raises(StorageConflict) as exc_info:
            cache_store.store(AssetKind.AUDIO, DIGEST, "second")

        assert exc_info.value.kind is AssetKind.AUDIO
        assert exc_info.value.fingerprint == DIGEST
        assert cache_store.lookup(AssetKind.AUDIO, DIGEST) == "first"
        assert cache_store.count(AssetKind.AUDIO) == 1

    def test_get_entry(self, cache_store) -> None:
        cache_store.store(AssetKind.IMAGE, DIGEST, "https://cdn.example/img.png")

        entry = cache_store.get_entry(AssetKind.IMAGE, DIGEST)

        assert entry is not None
        assert entry.kind is AssetKind.IMAGE
        assert entry.reference == "https://cdn.example/img.png"
        assert entry.created_at
        assert cache_store.get_entry(AssetKind.AUDIO, DIGEST) is None

    def test_entries_survive_a_new_store_instance(self, database) -> None:
        AssetCacheStore(database).store(AssetKind.IMAGE, DIGEST, "kept")

        assert AssetCacheStore(database).lookup(AssetKind.IMAGE, DIGEST) == "kept"


class TestConcurrentStores:
    def test_at_most_one_row_per_key(self, cache_store) -> None:
        def attempt(i: int) -> bool:
            try:
                cache_store.store(AssetKind.AUDIO, DIGEST, f"ref-{i}")
                return True
            except StorageConflict:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, range(16)))

        assert outcomes.count(True) == 1
        assert cache_store.count(AssetKind.AUDIO) == 1
