"""Per-user locks serializing plan mutations (activation, generation, template moves)."""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict

from redis.exceptions import LockError, RedisError

from config.settings import settings
from models.database import get_redis
from utils.errors import PersistenceError
from utils.logger import setup_logger

logger = setup_logger(__name__)

_local_locks: Dict[str, asyncio.Lock] = {}
_local_users: Dict[str, int] = {}


def _lock_name(user_id: str) -> str:
    return f"workout-planner:plan-lock:{user_id}"


@asynccontextmanager
async def user_plan_lock(user_id: str):
    """Hold the user's plan lock for the duration of the block.

    Uses a Redis lock when Redis is connected so that several API processes
    share it; otherwise falls back to a process-local asyncio.Lock.
    """
    name = _lock_name(user_id)
    redis_client = get_redis()

    if redis_client is None:
        lock = _local_locks.setdefault(name, asyncio.Lock())
        _local_users[name] = _local_users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Drop the entry once no holder or waiter is left.
            _local_users[name] -= 1
            if _local_users[name] == 0:
                del _local_users[name]
                _local_locks.pop(name, None)
        return

    lock = redis_client.lock(
        name,
        timeout=settings.plan_lock_timeout,
        blocking_timeout=settings.plan_lock_wait,
    )
    try:
        acquired = await lock.acquire()
    except RedisError as e:
        raise PersistenceError(
            f"Could not acquire plan lock for user {user_id}: {e}",
            details={"user_id": user_id, "reason": str(e)},
        ) from e
    if not acquired:
        raise PersistenceError(
            f"Timed out waiting for plan lock for user {user_id}",
            details={"user_id": user_id},
        )

    try:
        yield
    finally:
        try:
            await lock.release()
        except LockError as e:
            # Lock expired before release; the protected work already finished.
            logger.warning(f"Plan lock for user {user_id} expired before release: {e}")
