"""SQL store tests against the SQLite schema built from the ORM models."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from src.domain.entities import DropoffLocation, Ride, RidePassenger, User
from src.domain.enums import Direction, RideStatus
from src.infrastructure.repositories import SqlAlchemyRideStore


async def _ride(store: SqlAlchemyRideStore) -> Ride:
    creator = await store.create_user(User(username="organiser", password_hash="x.y"))
    return await store.create_ride(
        Ride(
            creator_id=creator.id,
            direction=Direction.RETURN,
            date=datetime(2026, 12, 20, 18, tzinfo=timezone.utc),
            max_passengers=3,
            pickup_location="Forest City",
            dropoff_locations=[DropoffLocation("Bishan"), DropoffLocation("Tampines", 2)],
        )
    )


class TestSqlAlchemyRideStore:
    @pytest.mark.asyncio
    async def test_ride_round_trip(self, session_factory):
        async with session_factory() as session:
            store = SqlAlchemyRideStore(session)
            ride = await _ride(store)
            await store.commit()

        async with session_factory() as session:
            loaded = await SqlAlchemyRideStore(session).get_ride(ride.id)
        assert loaded.direction == Direction.RETURN
        assert loaded.status == RideStatus.OPEN
        assert loaded.dropoff_locations == [
            DropoffLocation("Bishan", 1),
            DropoffLocation("Tampines", 2),
        ]
        assert loaded.sequence_locked is False

    @pytest.mark.asyncio
    async def test_passengers_listed_in_join_order(self, session_factory):
        async with session_factory() as session:
            store = SqlAlchemyRideStore(session)
            ride = await _ride(store)
            first = await store.add_passenger(
                RidePassenger(ride_id=ride.id, user_id=ride.creator_id, dropoff_location="A")
            )
            second = await store.add_passenger(
                RidePassenger(ride_id=ride.id, user_id=ride.creator_id, dropoff_location="B")
            )
            listed = await store.list_passengers(ride.id)
        assert [p.id for p in listed] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_capacity_enforced_by_database(self, session_factory):
        async with session_factory() as session:
            store = SqlAlchemyRideStore(session)
            ride = await _ride(store)
            await store.commit()

            ride.current_passengers = ride.max_passengers + 1
            with pytest.raises(IntegrityError):
                await store.update_ride(ride)
            await session.rollback()
