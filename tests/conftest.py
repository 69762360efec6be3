"""
Shared test fixtures.

Domain tests run against ``InMemoryRideStore``.  API tests use an
in-memory SQLite database (via aiosqlite) with the production ORM models,
and a dict-backed session store, so nothing needs Docker / PostgreSQL /
Redis.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.entities import Actor, DropoffLocation, Ride, User
from src.domain.enums import Direction
from src.domain.lifecycle import RideService
from src.infrastructure.database import Base
from src.infrastructure.locks import RideLockManager
from src.infrastructure.memory import InMemoryRideStore
import src.infrastructure.models  # noqa: F401  (registers tables on Base)


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
TestSessionFactory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


class FakeSessionStore:
    """Dict-backed stand-in for the Redis ``SessionStore``."""

    def __init__(self):
        self.tokens: dict[str, int] = {}

    async def create(self, user_id: int) -> str:
        token = f"token-{user_id}-{len(self.tokens)}"
        self.tokens[token] = user_id
        return token

    async def resolve(self, token: str) -> Optional[int]:
        return self.tokens.get(token)

    async def revoke(self, token: str) -> None:
        self.tokens.pop(token, None)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables, yield a session factory bound to them, then drop everything."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield TestSessionFactory

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def store() -> InMemoryRideStore:
    return InMemoryRideStore()


@pytest.fixture
def service(store: InMemoryRideStore) -> RideService:
    return RideService(store, RideLockManager(timeout_seconds=1.0))


@pytest.fixture
def ride_date() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=1)


async def make_user(
    store: InMemoryRideStore, username: str, is_vendor: bool = False
) -> Actor:
    user = await store.create_user(
        User(username=username, password_hash="x.y", full_name=username.title(),
             is_vendor=is_vendor)
    )
    return Actor(user.id, is_vendor=is_vendor)


async def make_ride(
    service: RideService,
    creator: Actor,
    date: datetime,
    direction: Direction = Direction.OUTBOUND,
    max_passengers: int = 4,
) -> Ride:
    return await service.create_ride(
        creator,
        direction=direction,
        date=date,
        max_passengers=max_passengers,
        pickup_location="Tanjong Pagar",
        dropoff_locations=[DropoffLocation("Forest City", 1)],
    )
