"""
Ride lifecycle tests against the in-memory store.

Covers the seat-sum invariant, the join/leave capacity scenarios, creator
and self authorisation, drop-off sequencing end to end and vendor
assignment.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from src.domain.entities import DropoffLocation
from src.domain.enums import Direction, RideStatus
from src.domain.errors import (
    AuthorizationError,
    CapacityError,
    NotFoundError,
    StateError,
    ValidationError,
)
from src.domain.lifecycle import RideService
from src.infrastructure.locks import RideLockManager
from tests.conftest import make_ride, make_user


async def _seat_sum(store, ride_id: int) -> int:
    return sum(p.passenger_count for p in await store.list_passengers(ride_id))


class TestCreateAndEdit:
    @pytest.mark.asyncio
    async def test_create_defaults(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        ride = await service.create_ride(
            creator,
            direction=Direction.RETURN,
            date=ride_date,
            max_passengers=4,
            pickup_location="Forest City",
            dropoff_locations=[
                DropoffLocation("Bishan", 1),
                DropoffLocation("Tampines", 2),
            ],
        )
        assert ride.status == RideStatus.OPEN
        assert ride.current_passengers == 0
        assert ride.vendor_id is None
        assert ride.cost == 80
        assert ride.additional_stops == 1
        assert ride.sequence_locked is False

    @pytest.mark.asyncio
    async def test_create_rejects_bad_capacity(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        with pytest.raises(ValidationError) as exc:
            await make_ride(service, creator, ride_date, max_passengers=0)
        assert exc.value.field == "max_passengers"

    @pytest.mark.asyncio
    async def test_only_creator_can_edit(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        other = await make_user(store, "other")
        ride = await make_ride(service, creator, ride_date)
        with pytest.raises(AuthorizationError):
            await service.edit_ride(other, ride.id, {"cost": 100})
        edited = await service.edit_ride(creator, ride.id, {"cost": 100})
        assert edited.cost == 100

    @pytest.mark.asyncio
    async def test_edit_cannot_shrink_below_occupied(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        rider = await make_user(store, "rider")
        ride = await make_ride(service, creator, ride_date)
        await service.join_ride(rider, ride.id, dropoff_location="A", passenger_count=3)
        with pytest.raises(ValidationError):
            await service.edit_ride(creator, ride.id, {"max_passengers": 2})
        edited = await service.edit_ride(creator, ride.id, {"max_passengers": 3})
        assert edited.max_passengers == 3
        assert edited.is_full

    @pytest.mark.asyncio
    async def test_edit_rejects_unknown_field(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        ride = await make_ride(service, creator, ride_date)
        with pytest.raises(ValidationError):
            await service.edit_ride(creator, ride.id, {"status": "completed"})


class TestJoinAndLeave:
    @pytest.mark.asyncio
    async def test_capacity_scenario(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        a = await make_user(store, "a")
        b = await make_user(store, "b")
        c = await make_user(store, "c")
        ride = await make_ride(service, creator, ride_date, max_passengers=4)

        await service.join_ride(a, ride.id, dropoff_location="A", passenger_count=2)
        assert (await service.get_ride(ride.id)).current_passengers == 2

        with pytest.raises(CapacityError) as exc:
            await service.join_ride(b, ride.id, dropoff_location="B", passenger_count=3)
        assert exc.value.available == 2
        assert "only 2" in exc.value.message

        await service.join_ride(b, ride.id, dropoff_location="B", passenger_count=2)
        ride = await service.get_ride(ride.id)
        assert ride.current_passengers == 4
        assert ride.status == RideStatus.OPEN
        assert ride.is_full

        with pytest.raises(CapacityError):
            await service.join_ride(c, ride.id, dropoff_location="C", passenger_count=1)

    @pytest.mark.asyncio
    async def test_seat_sum_invariant_across_joins_and_leaves(
        self, service, store, ride_date
    ):
        creator = await make_user(store, "organiser")
        riders = [await make_user(store, f"r{i}") for i in range(3)]
        ride = await make_ride(service, creator, ride_date, max_passengers=6)

        records = []
        for rider, count in zip(riders, (1, 2, 3)):
            records.append(
                await service.join_ride(
                    rider, ride.id, dropoff_location="X", passenger_count=count
                )
            )
            current = (await service.get_ride(ride.id)).current_passengers
            assert current == await _seat_sum(store, ride.id)

        await service.remove_passenger(riders[1], ride.id, records[1].id)
        ride = await service.get_ride(ride.id)
        assert ride.current_passengers == 4 == await _seat_sum(store, ride.id)

    @pytest.mark.asyncio
    async def test_invalid_party_size(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        ride = await make_ride(service, creator, ride_date)
        for count in (0, -1, 5):
            with pytest.raises(ValidationError):
                await service.join_ride(
                    creator, ride.id, dropoff_location="A", passenger_count=count
                )

    @pytest.mark.asyncio
    async def test_join_unknown_ride(self, service, store):
        rider = await make_user(store, "rider")
        with pytest.raises(NotFoundError):
            await service.join_ride(rider, 999, dropoff_location="A")

    @pytest.mark.asyncio
    async def test_stranger_cannot_remove_but_self_can(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        rider = await make_user(store, "rider")
        stranger = await make_user(store, "stranger")
        ride = await make_ride(service, creator, ride_date)
        record = await service.join_ride(
            rider, ride.id, dropoff_location="A", passenger_count=2
        )

        with pytest.raises(AuthorizationError):
            await service.remove_passenger(stranger, ride.id, record.id)
        assert (await service.get_ride(ride.id)).current_passengers == 2

        await service.remove_passenger(rider, ride.id, record.id)
        assert (await service.get_ride(ride.id)).current_passengers == 0
        assert await store.list_passengers(ride.id) == []

    @pytest.mark.asyncio
    async def test_creator_can_remove_passenger(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        rider = await make_user(store, "rider")
        ride = await make_ride(service, creator, ride_date)
        record = await service.join_ride(rider, ride.id, dropoff_location="A")
        await service.remove_passenger(creator, ride.id, record.id)
        assert (await service.get_ride(ride.id)).current_passengers == 0

    @pytest.mark.asyncio
    async def test_edit_passenger_count_rechecks_capacity(
        self, service, store, ride_date
    ):
        creator = await make_user(store, "organiser")
        a = await make_user(store, "a")
        b = await make_user(store, "b")
        ride = await make_ride(service, creator, ride_date, max_passengers=4)
        record = await service.join_ride(a, ride.id, dropoff_location="A", passenger_count=1)
        await service.join_ride(b, ride.id, dropoff_location="B", passenger_count=2)

        with pytest.raises(CapacityError) as exc:
            await service.edit_passenger(a, ride.id, record.id, passenger_count=3)
        assert exc.value.available == 2

        updated = await service.edit_passenger(a, ride.id, record.id, passenger_count=2)
        assert updated.passenger_count == 2
        assert (await service.get_ride(ride.id)).current_passengers == 4

    @pytest.mark.asyncio
    async def test_drifted_counter_is_repaired(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        rider = await make_user(store, "rider")
        ride = await make_ride(service, creator, ride_date, max_passengers=4)
        store.rides[ride.id].current_passengers = 3  # stale cache

        await service.join_ride(rider, ride.id, dropoff_location="A", passenger_count=4)
        assert (await service.get_ride(ride.id)).current_passengers == 4


class TestDelete:
    @pytest.mark.asyncio
    async def test_creator_deletes_with_own_record(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        ride = await make_ride(service, creator, ride_date)
        await service.join_ride(creator, ride.id, dropoff_location="A")
        await service.delete_ride(creator, ride.id)
        assert await store.get_ride(ride.id) is None
        assert store.passengers == {}

    @pytest.mark.asyncio
    async def test_non_creator_cannot_delete(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        other = await make_user(store, "other")
        ride = await make_ride(service, creator, ride_date)
        with pytest.raises(AuthorizationError):
            await service.delete_ride(other, ride.id)

    @pytest.mark.asyncio
    async def test_delete_blocked_by_other_passengers(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        rider = await make_user(store, "rider")
        ride = await make_ride(service, creator, ride_date)
        await service.join_ride(rider, ride.id, dropoff_location="A")
        with pytest.raises(StateError) as exc:
            await service.delete_ride(creator, ride.id)
        assert exc.value.reason == "ride_has_passengers"
        assert await store.get_ride(ride.id) is not None


class TestSequencing:
    async def _return_ride_with_three(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        riders = [await make_user(store, f"r{i}") for i in range(3)]
        ride = await make_ride(service, creator, ride_date, direction=Direction.RETURN)
        records = [
            await service.join_ride(r, ride.id, dropoff_location=f"Stop {i}")
            for i, r in enumerate(riders, start=1)
        ]
        return creator, riders, ride, records

    @pytest.mark.asyncio
    async def test_reorder_then_lock_scenario(self, service, store, ride_date):
        creator, _, ride, records = await self._return_ride_with_three(
            service, store, ride_date
        )
        assert all(r.dropoff_sequence is None for r in records)

        ordered = await service.reorder_passenger(creator, ride.id, records[2].id, 1)
        assert [p.id for p in ordered] == [records[2].id, records[0].id, records[1].id]
        assert [p.dropoff_sequence for p in ordered] == [1, 2, 3]

        locked = await service.lock_sequence(creator, ride.id)
        assert [p.id for p in locked] == [p.id for p in ordered]
        assert (await service.get_ride(ride.id)).sequence_locked

        with pytest.raises(StateError) as exc:
            await service.reorder_passenger(creator, ride.id, records[0].id, 1)
        assert exc.value.reason == "sequence_locked"
        after = await service.list_passengers(ride.id)
        assert [(p.id, p.dropoff_sequence) for p in after] == [
            (p.id, p.dropoff_sequence) for p in locked
        ]

    @pytest.mark.asyncio
    async def test_lock_twice_is_idempotent(self, service, store, ride_date):
        creator, _, ride, _ = await self._return_ride_with_three(
            service, store, ride_date
        )
        first = await service.lock_sequence(creator, ride.id)
        second = await service.lock_sequence(creator, ride.id)
        assert [(p.id, p.dropoff_sequence) for p in first] == [
            (p.id, p.dropoff_sequence) for p in second
        ]
        assert sorted(p.dropoff_sequence for p in second) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_join_after_lock_extends_sequence(self, service, store, ride_date):
        creator, _, ride, _ = await self._return_ride_with_three(
            service, store, ride_date
        )
        await service.lock_sequence(creator, ride.id)
        late = await make_user(store, "late")
        record = await service.join_ride(late, ride.id, dropoff_location="Stop 4")
        assert record.dropoff_sequence == 4

    @pytest.mark.asyncio
    async def test_leave_after_lock_leaves_gap_by_default(
        self, service, store, ride_date
    ):
        creator, riders, ride, records = await self._return_ride_with_three(
            service, store, ride_date
        )
        await service.lock_sequence(creator, ride.id)
        await service.remove_passenger(riders[1], ride.id, records[1].id)
        remaining = await service.list_passengers(ride.id)
        assert [p.dropoff_sequence for p in remaining] == [1, 3]

    @pytest.mark.asyncio
    async def test_leave_after_lock_compacts_when_configured(self, store, ride_date):
        service = RideService(store, RideLockManager(), compact_sequence_on_leave=True)
        creator, riders, ride, records = await self._return_ride_with_three(
            service, store, ride_date
        )
        await service.lock_sequence(creator, ride.id)
        await service.remove_passenger(riders[1], ride.id, records[1].id)
        remaining = await service.list_passengers(ride.id)
        assert [p.dropoff_sequence for p in remaining] == [1, 2]

    @pytest.mark.asyncio
    async def test_sequencing_rejected_on_outbound(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        ride = await make_ride(service, creator, ride_date, direction=Direction.OUTBOUND)
        record = await service.join_ride(creator, ride.id, dropoff_location="A")
        with pytest.raises(StateError) as exc:
            await service.lock_sequence(creator, ride.id)
        assert exc.value.reason == "sequencing_not_applicable"
        with pytest.raises(StateError):
            await service.reorder_passenger(creator, ride.id, record.id, 1)

    @pytest.mark.asyncio
    async def test_only_creator_sequences(self, service, store, ride_date):
        _, riders, ride, records = await self._return_ride_with_three(
            service, store, ride_date
        )
        with pytest.raises(AuthorizationError):
            await service.reorder_passenger(riders[0], ride.id, records[0].id, 2)
        with pytest.raises(AuthorizationError):
            await service.lock_sequence(riders[0], ride.id)


class TestVendorLifecycle:
    @pytest.mark.asyncio
    async def test_assign_and_complete(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        vendor = await make_user(store, "vendor", is_vendor=True)
        ride = await make_ride(service, creator, ride_date)

        assigned = await service.assign_vendor(vendor, ride.id)
        assert assigned.status == RideStatus.ASSIGNED
        assert assigned.vendor_id == vendor.user_id
        assert [r.id for r in await service.list_vendor_rides(vendor)] == [ride.id]

        completed = await service.complete_ride(vendor, ride.id)
        assert completed.status == RideStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_non_vendor_cannot_assign(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        ride = await make_ride(service, creator, ride_date)
        with pytest.raises(AuthorizationError):
            await service.assign_vendor(creator, ride.id)

    @pytest.mark.asyncio
    async def test_assign_only_from_open(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        vendor = await make_user(store, "vendor", is_vendor=True)
        other_vendor = await make_user(store, "vendor2", is_vendor=True)
        ride = await make_ride(service, creator, ride_date)
        await service.assign_vendor(vendor, ride.id)
        with pytest.raises(StateError):
            await service.assign_vendor(other_vendor, ride.id)

    @pytest.mark.asyncio
    async def test_cannot_join_assigned_ride(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        vendor = await make_user(store, "vendor", is_vendor=True)
        ride = await make_ride(service, creator, ride_date)
        await service.assign_vendor(vendor, ride.id)
        with pytest.raises(StateError) as exc:
            await service.join_ride(creator, ride.id, dropoff_location="A")
        assert exc.value.reason == "ride_not_open"

    @pytest.mark.asyncio
    async def test_complete_due_rides(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        vendor = await make_user(store, "vendor", is_vendor=True)
        past = await make_ride(service, creator, ride_date - timedelta(days=3))
        future = await make_ride(service, creator, ride_date)
        still_open = await make_ride(service, creator, ride_date - timedelta(days=3))
        await service.assign_vendor(vendor, past.id)
        await service.assign_vendor(vendor, future.id)

        completed = await service.complete_due_rides(ride_date, timedelta(hours=12))
        assert completed == 1
        assert (await service.get_ride(past.id)).status == RideStatus.COMPLETED
        assert (await service.get_ride(future.id)).status == RideStatus.ASSIGNED
        assert (await service.get_ride(still_open.id)).status == RideStatus.OPEN

    @pytest.mark.asyncio
    async def test_stranger_cannot_complete(self, service, store, ride_date):
        creator = await make_user(store, "organiser")
        vendor = await make_user(store, "vendor", is_vendor=True)
        stranger = await make_user(store, "stranger")
        ride = await make_ride(service, creator, ride_date)
        await service.assign_vendor(vendor, ride.id)
        with pytest.raises(AuthorizationError):
            await service.complete_ride(stranger, ride.id)
