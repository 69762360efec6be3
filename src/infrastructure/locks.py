"""
Locking primitives.

* ``RideLockManager`` -- in-process, per-ride ``asyncio.Lock`` registry used
  by the lifecycle service to serialise read-then-write sequences on one
  ride.  Acquisition is bounded; a timeout surfaces as a retryable
  ``InfrastructureError``.
* ``DistributedLock`` -- Redis lock used by the completion worker to
  ensure only one instance runs a cycle at a time.  Uses SET NX EX for
  acquire and a Lua script for atomic check-and-delete on release.
"""

from __future__ import annotations

import asyncio
import uuid
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis

from src.domain.errors import InfrastructureError
from src.domain.ports import RideLocks


class RideLockManager(RideLocks):
    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout = timeout_seconds
        # Entries vanish once no coroutine holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, ride_id: int) -> asyncio.Lock:
        lock = self._locks.get(ride_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[ride_id] = lock
        return lock

    async def _acquire(self, lock: asyncio.Lock, ride_id: int) -> None:
        waiter = asyncio.ensure_future(lock.acquire())

        def _release_if_acquired(task: "asyncio.Future[bool]") -> None:
            if not task.cancelled() and task.exception() is None:
                lock.release()

        try:
            done, _ = await asyncio.wait({waiter}, timeout=self.timeout)
        except asyncio.CancelledError:
            waiter.add_done_callback(_release_if_acquired)
            waiter.cancel()
            raise
        if done:
            waiter.result()
            return
        # The waiter may still be granted the lock after the timeout fires
        waiter.add_done_callback(_release_if_acquired)
        waiter.cancel()
        raise InfrastructureError(f"Timed out waiting for lock on ride {ride_id}")

    @asynccontextmanager
    async def hold(self, ride_id: int) -> AsyncIterator[None]:
        lock = self._lock_for(ride_id)
        await self._acquire(lock, ride_id)
        try:
            yield
        finally:
            lock.release()


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        lua = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
        """
        await self.redis.eval(lua, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise InfrastructureError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
