"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.accounts import AccountService
from src.domain.entities import Actor, User
from src.domain.lifecycle import RideService
from src.domain.ports import RideStore
from src.infrastructure.database import async_session_factory
from src.infrastructure.locks import RideLockManager
from src.infrastructure.memory import InMemoryRideStore
from src.infrastructure.redis_client import get_redis
from src.infrastructure.repositories import SqlAlchemyRideStore
from src.infrastructure.sessions import SessionStore

# Process-wide singletons
ride_locks = RideLockManager(settings.lock_timeout_seconds)
memory_store = InMemoryRideStore()

bearer = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_store(db: AsyncSession = Depends(get_db)) -> RideStore:
    if settings.storage_backend == "memory":
        return memory_store
    return SqlAlchemyRideStore(db)


async def get_ride_service(store: RideStore = Depends(get_store)) -> RideService:
    return RideService(
        store,
        ride_locks,
        max_party_size=settings.max_party_size,
        default_cost=settings.default_cost,
        compact_sequence_on_leave=settings.compact_sequence_on_leave,
    )


async def get_account_service(store: RideStore = Depends(get_store)) -> AccountService:
    return AccountService(store)


async def get_session_store() -> SessionStore:
    return SessionStore(await get_redis(), settings.session_ttl_seconds)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    sessions: SessionStore = Depends(get_session_store),
    store: RideStore = Depends(get_store),
) -> Optional[User]:
    """Resolve the bearer token to a user, or ``None`` for anonymous calls."""
    if credentials is None:
        return None
    user_id = await sessions.resolve(credentials.credentials)
    if user_id is None:
        return None
    return await store.get_user(user_id)


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def get_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(user_id=user.id, is_vendor=user.is_vendor)
