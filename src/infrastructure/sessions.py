"""
Redis-backed login sessions.

``session:<token>`` holds the user id with a sliding TTL; each successful
lookup refreshes the expiry.
"""

from __future__ import annotations

import secrets
from typing import Optional

import redis.asyncio as aioredis


class SessionStore:
    def __init__(self, client: aioredis.Redis, ttl_seconds: int):
        self.redis = client
        self.ttl = ttl_seconds

    @staticmethod
    def _key(token: str) -> str:
        return f"session:{token}"

    async def create(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        await self.redis.set(self._key(token), str(user_id), ex=self.ttl)
        return token

    async def resolve(self, token: str) -> Optional[int]:
        value = await self.redis.get(self._key(token))
        if value is None:
            return None
        await self.redis.expire(self._key(token), self.ttl)
        return int(value)

    async def revoke(self, token: str) -> None:
        await self.redis.delete(self._key(token))
