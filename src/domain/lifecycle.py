"""
Ride Lifecycle Controller
=========================

Orchestrates every ride mutation on top of the storage port, the capacity
model, the ownership guard and the drop-off sequence engine.

Concurrency safety
------------------
Every read-then-write runs inside ``locks.hold(ride_id)``.  Within that
scope the ride is re-read ``for_update`` (a row lock on SQL stores), the
passenger records are re-read, ``current_passengers`` is reconciled
against their authoritative sum, and the store is committed before the
scope is left.  Two concurrent joins therefore can never both pass the
capacity check on stale data.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from . import capacity, permissions, sequencing
from .entities import Actor, DropoffLocation, Ride, RidePassenger
from .enums import DELETABLE_STATUSES, Direction, RideStatus
from .errors import CapacityError, NotFoundError, StateError, ValidationError
from .ports import RideLocks, RideStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "date",
    "max_passengers",
    "pickup_location",
    "dropoff_locations",
    "cost",
    "additional_stops",
}


class RideService:
    def __init__(
        self,
        store: RideStore,
        locks: RideLocks,
        *,
        max_party_size: int = 4,
        default_cost: int = 80,
        compact_sequence_on_leave: bool = False,
    ):
        self.store = store
        self.locks = locks
        self.max_party_size = max_party_size
        self.default_cost = default_cost
        self.compact_sequence_on_leave = compact_sequence_on_leave

    # ── Input checks ──────────────────────────────────────────────────

    def _check_party_size(self, count: int, field: str = "passenger_count") -> None:
        if not 1 <= count <= self.max_party_size:
            raise ValidationError(
                field, f"must be between 1 and {self.max_party_size}"
            )

    def _check_dropoffs(self, dropoffs: list[DropoffLocation]) -> None:
        if not isinstance(dropoffs, list):
            raise ValidationError("dropoff_locations", "must be a list")
        for entry in dropoffs:
            if not entry.location.strip():
                raise ValidationError("dropoff_locations", "location must not be empty")
            self._check_party_size(entry.passenger_count, "dropoff_locations")

    @staticmethod
    def _check_non_negative(value: int, field: str) -> None:
        if value < 0:
            raise ValidationError(field, "must not be negative")

    # ── Loading helpers ───────────────────────────────────────────────

    async def _load_ride(self, ride_id: int, for_update: bool = False) -> Ride:
        ride = await self.store.get_ride(ride_id, for_update=for_update)
        if ride is None:
            raise NotFoundError("ride", ride_id)
        return ride

    async def _load_consistent(
        self, ride_id: int
    ) -> tuple[Ride, list[RidePassenger]]:
        """Re-read a ride and its passengers; repair a drifted seat counter."""
        ride = await self._load_ride(ride_id, for_update=True)
        passengers = await self.store.list_passengers(ride_id)
        occupied = capacity.occupied_seats(passengers)
        if ride.current_passengers != occupied:
            logger.warning(
                "Ride %d seat counter drifted (cached=%d, actual=%d); repairing",
                ride_id,
                ride.current_passengers,
                occupied,
            )
            ride.current_passengers = occupied
        return ride, passengers

    @staticmethod
    def _find_passenger(
        passengers: list[RidePassenger], passenger_id: int
    ) -> RidePassenger:
        for passenger in passengers:
            if passenger.id == passenger_id:
                return passenger
        raise NotFoundError("passenger", passenger_id)

    # ── Queries ───────────────────────────────────────────────────────

    async def get_ride(self, ride_id: int) -> Ride:
        return await self._load_ride(ride_id)

    async def list_rides(self) -> list[Ride]:
        return await self.store.list_rides()

    async def list_vendor_rides(self, actor: Actor) -> list[Ride]:
        permissions.require_vendor(actor)
        return await self.store.list_vendor_rides(actor.user_id)

    async def list_passengers(self, ride_id: int) -> list[RidePassenger]:
        """Passengers in drop-off order (sequenced first, then join order)."""
        await self._load_ride(ride_id)
        return sequencing.current_order(await self.store.list_passengers(ride_id))

    # ── Ride lifecycle ────────────────────────────────────────────────

    async def create_ride(
        self,
        actor: Actor,
        *,
        direction: Direction,
        date: datetime,
        max_passengers: int,
        pickup_location: str,
        dropoff_locations: list[DropoffLocation],
        cost: Optional[int] = None,
        additional_stops: Optional[int] = None,
    ) -> Ride:
        if max_passengers < 1:
            raise ValidationError("max_passengers", "must be at least 1")
        if not pickup_location.strip():
            raise ValidationError("pickup_location", "must not be empty")
        self._check_dropoffs(dropoff_locations)
        if cost is None:
            cost = self.default_cost
        self._check_non_negative(cost, "cost")
        if additional_stops is None:
            additional_stops = max(0, len(dropoff_locations) - 1)
        self._check_non_negative(additional_stops, "additional_stops")

        ride = await self.store.create_ride(
            Ride(
                creator_id=actor.user_id,
                direction=Direction(direction),
                date=date,
                max_passengers=max_passengers,
                current_passengers=0,
                pickup_location=pickup_location,
                dropoff_locations=list(dropoff_locations),
                status=RideStatus.OPEN,
                vendor_id=None,
                cost=cost,
                additional_stops=additional_stops,
            )
        )
        await self.store.commit()
        logger.info(
            "Ride %d created by user %d (%s, %d seats)",
            ride.id,
            actor.user_id,
            ride.direction.value,
            ride.max_passengers,
        )
        return ride

    async def edit_ride(
        self, actor: Actor, ride_id: int, changes: dict[str, Any]
    ) -> Ride:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field is not editable")

        async with self.locks.hold(ride_id):
            ride, passengers = await self._load_consistent(ride_id)
            permissions.require_edit(actor, ride)
            if ride.status == RideStatus.COMPLETED:
                raise StateError("ride_completed", "Completed rides cannot be edited")

            if "max_passengers" in changes:
                new_max = changes["max_passengers"]
                occupied = capacity.occupied_seats(passengers)
                if new_max < max(occupied, 1):
                    raise ValidationError(
                        "max_passengers",
                        "Cannot decrease max passengers below current passengers count",
                    )
                ride.max_passengers = new_max
            if "dropoff_locations" in changes:
                self._check_dropoffs(changes["dropoff_locations"])
                ride.dropoff_locations = list(changes["dropoff_locations"])
            if "pickup_location" in changes:
                if not changes["pickup_location"].strip():
                    raise ValidationError("pickup_location", "must not be empty")
                ride.pickup_location = changes["pickup_location"]
            for field in ("cost", "additional_stops"):
                if field in changes:
                    self._check_non_negative(changes[field], field)
                    setattr(ride, field, changes[field])
            if "date" in changes:
                ride.date = changes["date"]

            ride = await self.store.update_ride(ride)
            await self.store.commit()
        logger.info("Ride %d edited by user %d: %s", ride_id, actor.user_id, sorted(changes))
        return ride

    async def delete_ride(self, actor: Actor, ride_id: int) -> None:
        async with self.locks.hold(ride_id):
            ride, passengers = await self._load_consistent(ride_id)
            permissions.require_delete(actor, ride, passengers)
            if ride.status not in DELETABLE_STATUSES:
                raise StateError(
                    "ride_completed", f"Cannot delete ride in status {ride.status.value}"
                )
            for passenger in passengers:
                await self.store.delete_passenger(passenger.id)
            await self.store.delete_ride(ride_id)
            await self.store.commit()
        logger.info("Ride %d deleted by user %d", ride_id, actor.user_id)

    async def assign_vendor(self, actor: Actor, ride_id: int) -> Ride:
        permissions.require_vendor(actor)
        async with self.locks.hold(ride_id):
            ride = await self._load_ride(ride_id, for_update=True)
            ride.transition_to(RideStatus.ASSIGNED)
            ride.vendor_id = actor.user_id
            ride = await self.store.update_ride(ride)
            await self.store.commit()
        logger.info("Ride %d assigned to vendor %d", ride_id, actor.user_id)
        return ride

    async def complete_ride(self, actor: Actor, ride_id: int) -> Ride:
        async with self.locks.hold(ride_id):
            ride = await self._load_ride(ride_id, for_update=True)
            permissions.require_complete(actor, ride)
            ride.transition_to(RideStatus.COMPLETED)
            ride = await self.store.update_ride(ride)
            await self.store.commit()
        logger.info("Ride %d completed by user %d", ride_id, actor.user_id)
        return ride

    async def complete_due_rides(self, now: datetime, grace: timedelta) -> int:
        """Complete assigned rides whose date is older than ``now - grace``."""
        completed = 0
        for candidate in await self.store.list_assigned_before(now - grace):
            async with self.locks.hold(candidate.id):
                ride = await self.store.get_ride(candidate.id, for_update=True)
                if ride is None or ride.status != RideStatus.ASSIGNED:
                    continue
                ride.transition_to(RideStatus.COMPLETED)
                await self.store.update_ride(ride)
                await self.store.commit()
                completed += 1
        return completed

    # ── Passengers ────────────────────────────────────────────────────

    async def join_ride(
        self,
        actor: Actor,
        ride_id: int,
        *,
        dropoff_location: str,
        passenger_count: int = 1,
    ) -> RidePassenger:
        self._check_party_size(passenger_count)
        if not dropoff_location.strip():
            raise ValidationError("dropoff_location", "must not be empty")

        async with self.locks.hold(ride_id):
            ride, passengers = await self._load_consistent(ride_id)
            if ride.status != RideStatus.OPEN:
                raise StateError(
                    "ride_not_open", f"Cannot join ride in status {ride.status.value}"
                )
            if not capacity.can_accommodate(ride, passengers, passenger_count):
                raise CapacityError(capacity.available_seats(ride, passengers))

            newcomer = RidePassenger(
                ride_id=ride_id,
                user_id=actor.user_id,
                dropoff_location=dropoff_location,
                passenger_count=passenger_count,
            )
            if ride.is_sequenced:
                sequencing.extend(ride, passengers, newcomer)
            newcomer = await self.store.add_passenger(newcomer)
            ride.current_passengers += passenger_count
            await self.store.update_ride(ride)
            await self.store.commit()
        logger.info(
            "User %d joined ride %d with %d seat(s) (%d/%d)",
            actor.user_id,
            ride_id,
            passenger_count,
            ride.current_passengers,
            ride.max_passengers,
        )
        return newcomer

    async def edit_passenger(
        self,
        actor: Actor,
        ride_id: int,
        passenger_id: int,
        *,
        passenger_count: Optional[int] = None,
        dropoff_location: Optional[str] = None,
    ) -> RidePassenger:
        if passenger_count is not None:
            self._check_party_size(passenger_count)
        if dropoff_location is not None and not dropoff_location.strip():
            raise ValidationError("dropoff_location", "must not be empty")

        async with self.locks.hold(ride_id):
            ride, passengers = await self._load_consistent(ride_id)
            passenger = self._find_passenger(passengers, passenger_id)
            permissions.require_remove_passenger(actor, ride, passenger)
            if ride.status == RideStatus.COMPLETED:
                raise StateError("ride_completed", "Completed rides cannot be changed")

            if passenger_count is not None:
                others = [p for p in passengers if p.id != passenger_id]
                if not capacity.can_accommodate(ride, others, passenger_count):
                    raise CapacityError(capacity.available_seats(ride, others))
                passenger.passenger_count = passenger_count
            if dropoff_location is not None:
                passenger.dropoff_location = dropoff_location

            await self.store.update_passengers([passenger])
            ride.current_passengers = capacity.occupied_seats(passengers)
            await self.store.update_ride(ride)
            await self.store.commit()
        return passenger

    async def remove_passenger(
        self, actor: Actor, ride_id: int, passenger_id: int
    ) -> None:
        async with self.locks.hold(ride_id):
            ride, passengers = await self._load_consistent(ride_id)
            passenger = self._find_passenger(passengers, passenger_id)
            permissions.require_remove_passenger(actor, ride, passenger)
            if ride.status == RideStatus.COMPLETED:
                raise StateError("ride_completed", "Completed rides cannot be changed")

            await self.store.delete_passenger(passenger_id)
            remaining = [p for p in passengers if p.id != passenger_id]
            ride.current_passengers = capacity.occupied_seats(remaining)
            if ride.sequence_locked and self.compact_sequence_on_leave:
                await self.store.update_passengers(sequencing.compact(remaining))
            await self.store.update_ride(ride)
            await self.store.commit()
        logger.info(
            "Passenger %d removed from ride %d by user %d",
            passenger_id,
            ride_id,
            actor.user_id,
        )

    # ── Drop-off sequencing ───────────────────────────────────────────

    async def reorder_passenger(
        self, actor: Actor, ride_id: int, passenger_id: int, new_position: int
    ) -> list[RidePassenger]:
        async with self.locks.hold(ride_id):
            ride, passengers = await self._load_consistent(ride_id)
            permissions.require_manage_sequence(actor, ride)
            ordered = sequencing.reorder(ride, passengers, passenger_id, new_position)
            await self.store.update_passengers(ordered)
            await self.store.commit()
        logger.info(
            "Ride %d: passenger %d moved to position %d",
            ride_id,
            passenger_id,
            new_position,
        )
        return ordered

    async def lock_sequence(self, actor: Actor, ride_id: int) -> list[RidePassenger]:
        async with self.locks.hold(ride_id):
            ride, passengers = await self._load_consistent(ride_id)
            permissions.require_manage_sequence(actor, ride)
            if ride.sequence_locked:
                return sequencing.current_order(passengers)
            ordered = sequencing.lock(ride, passengers)
            await self.store.update_passengers(ordered)
            await self.store.update_ride(ride)
            await self.store.commit()
        logger.info("Ride %d: drop-off sequence locked (%d stops)", ride_id, len(ordered))
        return ordered
