from __future__ import annotations

import random

import pytest

from preview_cache.data.memory import MemoryCache, preview_key, thumbnail_key


def test_keys_are_independent_per_channel() -> None:
    assert thumbnail_key("a1") == "thumb_a1"
    assert preview_key("a1") == "preview_a1"


def test_least_recently_set_entry_is_evicted_first() -> None:
    cache = MemoryCache(max_bytes=1000)

    cache.set("k1", b"x" * 400)
    cache.set("k2", b"y" * 400)
    cache.set("k3", b"z" * 400)

    assert cache.get("k1") is None
    assert cache.get("k2") == b"y" * 400
    assert cache.get("k3") == b"z" * 400
    assert cache.total_bytes == 800
    assert len(cache) == 2


def test_get_refreshes_recency() -> None:
    cache = MemoryCache(max_bytes=1000)
    cache.set("k1", b"x" * 400)
    cache.set("k2", b"y" * 400)

    assert cache.get("k1") is not None
    cache.set("k3", b"z" * 400)

    assert "k1" in cache
    assert "k2" not in cache
    assert "k3" in cache


def test_identical_timestamps_fall_back_to_access_order(monkeypatch: pytest.MonkeyPatch) -> None:
    cache = MemoryCache(max_bytes=30)
    monkeypatch.setattr(cache, "_now", lambda: 42.0)

    cache.set("a", b"1" * 10)
    cache.set("b", b"2" * 10)
    cache.set("c", b"3" * 10)
    cache.get("a")
    cache.set("d", b"4" * 10)

    assert "b" not in cache
    assert all(key in cache for key in ("a", "c", "d"))


def test_single_large_blob_can_evict_many_small_ones() -> None:
    cache = MemoryCache(max_bytes=1000)
    for index in range(10):
        cache.set(f"small-{index}", b"s" * 100)

    cache.set("large", b"L" * 950)

    assert len(cache) == 1
    assert cache.total_bytes == 950


def test_oversized_blob_is_still_inserted() -> None:
    cache = MemoryCache(max_bytes=100)
    cache.set("small", b"s" * 50)

    cache.set("huge", b"h" * 500)

    assert "small" not in cache
    assert cache.get("huge") == b"h" * 500
    assert cache.total_bytes == 500


def test_replacing_a_key_does_not_double_count() -> None:
    cache = MemoryCache(max_bytes=1000)
    cache.set("k", b"a" * 600)
    cache.set("k", b"b" * 700)

    assert len(cache) == 1
    assert cache.total_bytes == 700
    assert cache.get("k") == b"b" * 700


def test_invalidate_and_clear_release_bytes() -> None:
    cache = MemoryCache(max_bytes=1000)
    cache.set("k1", b"x" * 300)
    cache.set("k2", b"y" * 300)

    cache.invalidate("k1")
    cache.invalidate("missing")
    assert cache.total_bytes == 300

    cache.clear()
    assert len(cache) == 0
    assert cache.total_bytes == 0
    assert cache.get("k2") is None


def test_negative_budget_is_rejected() -> None:
    with pytest.raises(ValueError):
        MemoryCache(max_bytes=-1)


@pytest.mark.parametrize("seed", [0, 1, 7, 2024])
def test_budget_holds_after_every_set(seed: int) -> None:
    rng = random.Random(seed)
    budget = 1000
    cache = MemoryCache(max_bytes=budget)

    for step in range(300):
        key = f"k{rng.randrange(25)}"
        size = rng.choice([0, 1, 50, 200, 400, 999, 1000, 1500])
        cache.set(key, bytes(size))
        if rng.random() < 0.3:
            cache.get(f"k{rng.randrange(25)}")

        resident = cache.total_bytes
        if resident > budget:
            # Only a lone, most recent oversized blob may exceed the budget.
            assert len(cache) == 1, step
            assert cache.get(key) == bytes(size)
        assert resident == sum(
            len(cache.get(k) or b"") for k in (f"k{i}" for i in range(25))
        )
