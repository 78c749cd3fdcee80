"""
Tests for the per-user plan lock.
"""
import asyncio

import pytest

from utils import locks
from utils.errors import PersistenceError


class _RedisLock:
    def __init__(self, acquired):
        self.acquired = acquired
        self.released = False

    async def acquire(self):
        return self.acquired

    async def release(self):
        self.released = True


class _Redis:
    def __init__(self, acquired=True):
        self.handle = _RedisLock(acquired)
        self.names = []

    def lock(self, name, timeout, blocking_timeout):
        self.names.append(name)
        return self.handle


@pytest.mark.asyncio
async def test_local_lock_serializes_one_user(monkeypatch):
    monkeypatch.setattr(locks, "get_redis", lambda: None)
    monkeypatch.setattr(locks, "_local_locks", {})
    monkeypatch.setattr(locks, "_local_users", {})
    events = []

    async def worker(tag):
        async with locks.user_plan_lock("user-1"):
            events.append(f"{tag}-in")
            await asyncio.sleep(0.01)
            events.append(f"{tag}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_local_locks_are_per_user(monkeypatch):
    monkeypatch.setattr(locks, "get_redis", lambda: None)

    async with locks.user_plan_lock("user-1"):
        async with locks.user_plan_lock("user-2"):
            pass


@pytest.mark.asyncio
async def test_local_lock_entries_are_dropped_after_release(monkeypatch):
    monkeypatch.setattr(locks, "get_redis", lambda: None)
    monkeypatch.setattr(locks, "_local_locks", {})
    monkeypatch.setattr(locks, "_local_users", {})
    seen = []

    async def worker():
        async with locks.user_plan_lock("user-1"):
            await asyncio.sleep(0.01)
            seen.append(dict(locks._local_users))

    await asyncio.gather(worker(), worker())
    async with locks.user_plan_lock("user-2"):
        pass

    assert seen[0] == {"workout-planner:plan-lock:user-1": 2}
    assert locks._local_locks == {}
    assert locks._local_users == {}


@pytest.mark.asyncio
async def test_redis_lock_is_released(monkeypatch):
    redis_client = _Redis()
    monkeypatch.setattr(locks, "get_redis", lambda: redis_client)

    async with locks.user_plan_lock("user-1"):
        assert not redis_client.handle.released

    assert redis_client.handle.released
    assert redis_client.names == ["workout-planner:plan-lock:user-1"]


@pytest.mark.asyncio
async def test_redis_lock_timeout(monkeypatch):
    monkeypatch.setattr(locks, "get_redis", lambda: _Redis(acquired=False))

    with pytest.raises(PersistenceError):
        async with locks.user_plan_lock("user-1"):
            pass
