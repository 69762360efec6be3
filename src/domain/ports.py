"""
Storage port.

The lifecycle service only talks to this interface, so the core stays
storage-agnostic.  Implementations:

* ``src.infrastructure.memory.InMemoryRideStore``  -- tests / demo mode
* ``src.infrastructure.repositories.SqlAlchemyRideStore`` -- PostgreSQL

Identifiers are issued by the store and increase monotonically.
``list_passengers`` must return records in join (id) order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncContextManager, Optional

from .entities import Ride, RidePassenger, User


class RideStore(ABC):
    # ── Users ─────────────────────────────────────────────────────────

    @abstractmethod
    async def create_user(self, user: User) -> User: ...

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    async def update_user(self, user: User) -> User: ...

    # ── Rides ─────────────────────────────────────────────────────────

    @abstractmethod
    async def create_ride(self, ride: Ride) -> Ride: ...

    @abstractmethod
    async def get_ride(self, ride_id: int, for_update: bool = False) -> Optional[Ride]:
        """Fetch a ride; ``for_update`` row-locks it until ``commit``."""

    @abstractmethod
    async def list_rides(self) -> list[Ride]: ...

    @abstractmethod
    async def list_vendor_rides(self, vendor_id: int) -> list[Ride]: ...

    @abstractmethod
    async def list_assigned_before(self, cutoff: datetime) -> list[Ride]: ...

    @abstractmethod
    async def update_ride(self, ride: Ride) -> Ride: ...

    @abstractmethod
    async def delete_ride(self, ride_id: int) -> None: ...

    # ── Passengers ────────────────────────────────────────────────────

    @abstractmethod
    async def add_passenger(self, passenger: RidePassenger) -> RidePassenger: ...

    @abstractmethod
    async def get_passenger(self, passenger_id: int) -> Optional[RidePassenger]: ...

    @abstractmethod
    async def list_passengers(self, ride_id: int) -> list[RidePassenger]: ...

    @abstractmethod
    async def update_passengers(self, passengers: list[RidePassenger]) -> None: ...

    @abstractmethod
    async def delete_passenger(self, passenger_id: int) -> None: ...

    # ── Unit of work ──────────────────────────────────────────────────

    @abstractmethod
    async def commit(self) -> None:
        """Make pending writes durable and release row locks."""


class RideLocks(ABC):
    """Per-ride mutual exclusion for read-then-write sequences."""

    @abstractmethod
    def hold(self, ride_id: int) -> AsyncContextManager[None]: ...
