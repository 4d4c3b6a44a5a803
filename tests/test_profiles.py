from __future__ import annotations

import json
from pathlib import Path

import pytest

from pyzmon.exceptions import StorageError
from pyzmon.profiles import ProfileCache
from pyzmon.state.policy import CacheSavePolicy
from pyzmon.storage import JsonFileStorage, MemoryStorage


class _Clock:
    def __init__(self) -> None:
        self.now_ms = 0

    def __call__(self) -> int:
        return self.now_ms


def _payload(athlete_id: int) -> dict[str, object]:
    return {"athleteId": athlete_id, "firstName": f"Rider{athlete_id}", "lastName": "Test"}


@pytest.mark.asyncio
async def test_save_requires_interval_and_update_count() -> None:
    clock = _Clock()
    storage = MemoryStorage()
    cache = ProfileCache(policy=CacheSavePolicy(min_interval=30, min_updates=100, clock=clock))
    await cache.load(storage)

    for athlete_id in range(50):
        cache.record(athlete_id, _payload(athlete_id))
    clock.now_ms = 20_000
    for athlete_id in range(50, 120):
        cache.record(athlete_id, _payload(athlete_id))

    assert cache.policy.pending_updates == 120
    assert await cache.maybe_save(storage) is False
    assert await storage.load("athlete-cache") is None

    clock.now_ms = 31_000
    assert await cache.maybe_save(storage) is True
    assert cache.policy.pending_updates == 0
    assert cache.policy.last_save_ms == 31_000

    reloaded = ProfileCache()
    assert await reloaded.load(storage) == 120
    assert reloaded.get(7) is not None
    assert reloaded.get(7).first_name == "Rider7"


@pytest.mark.asyncio
async def test_interval_alone_is_not_enough() -> None:
    clock = _Clock()
    storage = MemoryStorage()
    cache = ProfileCache(policy=CacheSavePolicy(min_interval=30, min_updates=100, clock=clock))
    await cache.load(storage)

    for athlete_id in range(99):
        cache.record(athlete_id, _payload(athlete_id))
    clock.now_ms = 600_000

    assert await cache.maybe_save(storage) is False


@pytest.mark.asyncio
async def test_load_restarts_interval() -> None:
    clock = _Clock()
    clock.now_ms = 1_000
    policy = CacheSavePolicy(min_interval=30, min_updates=1, clock=clock)
    cache = ProfileCache(policy=policy)

    clock.now_ms = 50_000
    await cache.load(MemoryStorage())
    cache.record(1, _payload(1))

    assert policy.last_save_ms == 50_000
    assert policy.should_save(now_ms=70_000) is False
    assert policy.should_save(now_ms=80_000) is True


@pytest.mark.asyncio
async def test_missing_cache_loads_empty() -> None:
    cache = ProfileCache()

    assert await cache.load(MemoryStorage()) == 0
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_latest_entered_world_wins() -> None:
    cache = ProfileCache()
    cache.record(5, {"athleteId": 5, "firstName": "Old"})
    cache.record(5, {"athleteId": 5, "firstName": "New", "avatar": "https://example.invalid/a.png"})

    profile = cache.get(5)
    assert profile is not None
    assert profile.first_name == "New"
    assert profile.avatar == "https://example.invalid/a.png"
    assert len(cache) == 1
    assert cache.policy.pending_updates == 2


@pytest.mark.asyncio
async def test_malformed_entries_are_skipped() -> None:
    storage = MemoryStorage()
    await storage.save("athlete-cache", [[1, {"firstName": "Ada"}], "junk", [2], [3, "not-a-dict"]])
    cache = ProfileCache()

    assert await cache.load(storage) == 1
    assert cache.get(1) is not None
    assert 2 not in cache


@pytest.mark.asyncio
async def test_non_list_cache_raises(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path)
    await storage.save("athlete-cache", {"unexpected": True})

    with pytest.raises(StorageError):
        await ProfileCache().load(storage)


@pytest.mark.asyncio
async def test_corrupt_cache_file_raises(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path)
    storage.path_for("athlete-cache").write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError) as exc_info:
        await ProfileCache().load(storage)
    assert exc_info.value.key == "athlete-cache"


@pytest.mark.asyncio
async def test_json_file_storage_writes_pairs(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path / "nested")
    cache = ProfileCache()
    cache.record(42, _payload(42))

    assert await cache.flush(storage) is True

    path = storage.path_for("athlete-cache")
    assert path.name == "state-athlete-cache.json"
    assert not path.with_name(path.name + ".tmp").exists()
    pairs = json.loads(path.read_text(encoding="utf-8"))
    assert pairs[0][0] == 42
    assert pairs[0][1]["firstName"] == "Rider42"
    assert await storage.load("missing") is None


@pytest.mark.asyncio
async def test_flush_is_noop_without_updates() -> None:
    storage = MemoryStorage()
    cache = ProfileCache()

    assert await cache.flush(storage) is False
    assert await storage.load("athlete-cache") is None
