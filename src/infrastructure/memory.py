"""
In-memory ``RideStore``.

Backs the domain tests and ``STORAGE_BACKEND=memory`` demo runs.  Entities
are deep-copied on the way in and out so callers can never mutate stored
state without going through an explicit update.
"""

from __future__ import annotations

import copy
import itertools
from datetime import datetime
from typing import Optional

from src.domain.entities import Ride, RidePassenger, User
from src.domain.enums import RideStatus
from src.domain.ports import RideStore


class InMemoryRideStore(RideStore):
    def __init__(self):
        self.users: dict[int, User] = {}
        self.rides: dict[int, Ride] = {}
        self.passengers: dict[int, RidePassenger] = {}
        self._user_ids = itertools.count(1)
        self._ride_ids = itertools.count(1)
        self._passenger_ids = itertools.count(1)

    # ── Users ─────────────────────────────────────────────────────────

    async def create_user(self, user: User) -> User:
        stored = copy.deepcopy(user)
        stored.id = next(self._user_ids)
        self.users[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_user(self, user_id: int) -> Optional[User]:
        return copy.deepcopy(self.users.get(user_id))

    async def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self.users.values():
            if user.username == username:
                return copy.deepcopy(user)
        return None

    async def update_user(self, user: User) -> User:
        self.users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    # ── Rides ─────────────────────────────────────────────────────────

    async def create_ride(self, ride: Ride) -> Ride:
        stored = copy.deepcopy(ride)
        stored.id = next(self._ride_ids)
        self.rides[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_ride(self, ride_id: int, for_update: bool = False) -> Optional[Ride]:
        return copy.deepcopy(self.rides.get(ride_id))

    async def list_rides(self) -> list[Ride]:
        return [copy.deepcopy(r) for r in self.rides.values()]

    async def list_vendor_rides(self, vendor_id: int) -> list[Ride]:
        return [copy.deepcopy(r) for r in self.rides.values() if r.vendor_id == vendor_id]

    async def list_assigned_before(self, cutoff: datetime) -> list[Ride]:
        return [
            copy.deepcopy(r)
            for r in self.rides.values()
            if r.status == RideStatus.ASSIGNED and r.date is not None and r.date < cutoff
        ]

    async def update_ride(self, ride: Ride) -> Ride:
        self.rides[ride.id] = copy.deepcopy(ride)
        return copy.deepcopy(ride)

    async def delete_ride(self, ride_id: int) -> None:
        self.rides.pop(ride_id, None)

    # ── Passengers ────────────────────────────────────────────────────

    async def add_passenger(self, passenger: RidePassenger) -> RidePassenger:
        stored = copy.deepcopy(passenger)
        stored.id = next(self._passenger_ids)
        self.passengers[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_passenger(self, passenger_id: int) -> Optional[RidePassenger]:
        return copy.deepcopy(self.passengers.get(passenger_id))

    async def list_passengers(self, ride_id: int) -> list[RidePassenger]:
        return [
            copy.deepcopy(p)
            for _, p in sorted(self.passengers.items())
            if p.ride_id == ride_id
        ]

    async def update_passengers(self, passengers: list[RidePassenger]) -> None:
        for passenger in passengers:
            self.passengers[passenger.id] = copy.deepcopy(passenger)

    async def delete_passenger(self, passenger_id: int) -> None:
        self.passengers.pop(passenger_id, None)

    async def commit(self) -> None:
        return None
