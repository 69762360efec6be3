"""
Background Completion Worker
============================

Runs every ``COMPLETION_INTERVAL_SECONDS`` (default 300 s) and moves
ASSIGNED rides whose scheduled date lies more than
``COMPLETION_GRACE_HOURS`` in the past to COMPLETED.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance runs the cycle at
  a time across multiple API processes.
* Each ride is completed through ``RideService.complete_due_rides``, which
  takes the per-ride lock and re-checks the status under it, so a ride
  deleted or completed concurrently is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from src.config import settings
from src.domain.lifecycle import RideService
from src.infrastructure.database import async_session_factory
from src.infrastructure.locks import DistributedLock, RideLockManager
from src.infrastructure.redis_client import get_redis
from src.infrastructure.repositories import SqlAlchemyRideStore

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_completion_loop(locks: RideLockManager) -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop(locks))
    logger.info(
        "Completion worker started (interval=%ds)",
        settings.completion_interval_seconds,
    )


async def stop_completion_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Completion worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(locks: RideLockManager) -> None:
    """Periodic loop: run a completion cycle then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_completion_cycle(locks)
        except Exception:
            logger.exception("Unhandled error in completion cycle")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.completion_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_completion_cycle(locks: RideLockManager) -> int:
    """Execute one cycle.  Returns the number of rides completed."""
    redis = await get_redis()
    lock = DistributedLock(redis, "ride_completion", ttl_seconds=60)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping cycle")
        return 0

    try:
        async with async_session_factory() as session:
            service = RideService(SqlAlchemyRideStore(session), locks)
            completed = await service.complete_due_rides(
                datetime.now(timezone.utc),
                timedelta(hours=settings.completion_grace_hours),
            )
        if completed:
            logger.info("Completion cycle: %d rides completed", completed)
        return completed
    finally:
        await lock.release()
