"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``SqlAlchemyRideStore`` composes them into
the ``RideStore`` port and converts ORM rows to domain entities, so no
ORM object ever leaves this module.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RideModel, RidePassengerModel, UserModel
from src.domain.entities import DropoffLocation, Ride, RidePassenger, User
from src.domain.enums import Direction, RideStatus
from src.domain.ports import RideStore


# ── Row <-> entity mapping ────────────────────────────────────────────

_USER_FIELDS = (
    "username",
    "password_hash",
    "full_name",
    "whatsapp_number",
    "phone_number",
    "payment_handle",
    "is_vendor",
    "company_name",
    "vendor_details",
)

_RIDE_FIELDS = (
    "creator_id",
    "direction",
    "date",
    "max_passengers",
    "current_passengers",
    "pickup_location",
    "status",
    "vendor_id",
    "cost",
    "additional_stops",
    "sequence_locked",
)

_PASSENGER_FIELDS = (
    "ride_id",
    "user_id",
    "dropoff_location",
    "dropoff_sequence",
    "passenger_count",
)


def _to_user(row: UserModel) -> User:
    return User(id=row.id, **{f: getattr(row, f) for f in _USER_FIELDS})


def _to_ride(row: RideModel) -> Ride:
    ride = Ride(id=row.id, **{f: getattr(row, f) for f in _RIDE_FIELDS})
    ride.direction = Direction(row.direction)
    ride.status = RideStatus(row.status)
    ride.dropoff_locations = [
        DropoffLocation.from_dict(entry) for entry in row.dropoff_locations or []
    ]
    return ride


def _to_passenger(row: RidePassengerModel) -> RidePassenger:
    return RidePassenger(id=row.id, **{f: getattr(row, f) for f in _PASSENGER_FIELDS})


def _apply_ride(row: RideModel, ride: Ride) -> None:
    for f in _RIDE_FIELDS:
        setattr(row, f, getattr(ride, f))
    row.dropoff_locations = [d.to_dict() for d in ride.dropoff_locations]


# ── Repositories ──────────────────────────────────────────────────────


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_username(self, username: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalar_one_or_none()


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(
        self, ride_id: int, for_update: bool = False
    ) -> Optional[RideModel]:
        if not for_update:
            return await self.session.get(RideModel, ride_id)
        # SELECT ... FOR UPDATE serialises writers across processes
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_all(self) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel).order_by(RideModel.date, RideModel.id)
        )
        return list(result.scalars().all())

    async def get_by_vendor(self, vendor_id: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.vendor_id == vendor_id)
            .order_by(RideModel.date, RideModel.id)
        )
        return list(result.scalars().all())

    async def get_assigned_before(self, cutoff: datetime) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.status == RideStatus.ASSIGNED)
            .where(RideModel.date < cutoff)
            .order_by(RideModel.id)
        )
        return list(result.scalars().all())

    async def delete(self, ride_id: int) -> None:
        await self.session.execute(delete(RideModel).where(RideModel.id == ride_id))


class RidePassengerRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, passenger: RidePassengerModel) -> RidePassengerModel:
        self.session.add(passenger)
        await self.session.flush()
        return passenger

    async def get_by_id(self, passenger_id: int) -> Optional[RidePassengerModel]:
        return await self.session.get(RidePassengerModel, passenger_id)

    async def get_for_ride(self, ride_id: int) -> list[RidePassengerModel]:
        result = await self.session.execute(
            select(RidePassengerModel)
            .where(RidePassengerModel.ride_id == ride_id)
            .order_by(RidePassengerModel.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def delete(self, passenger_id: int) -> None:
        await self.session.execute(
            delete(RidePassengerModel).where(RidePassengerModel.id == passenger_id)
        )


# ── Port implementation ───────────────────────────────────────────────


class SqlAlchemyRideStore(RideStore):
    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.rides = RideRepository(session)
        self.passengers = RidePassengerRepository(session)

    async def create_user(self, user: User) -> User:
        row = await self.users.create(
            UserModel(**{f: getattr(user, f) for f in _USER_FIELDS})
        )
        return _to_user(row)

    async def get_user(self, user_id: int) -> Optional[User]:
        row = await self.users.get_by_id(user_id)
        return _to_user(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        row = await self.users.get_by_username(username)
        return _to_user(row) if row else None

    async def update_user(self, user: User) -> User:
        row = await self.users.get_by_id(user.id)
        for f in _USER_FIELDS:
            setattr(row, f, getattr(user, f))
        await self.session.flush()
        return _to_user(row)

    async def create_ride(self, ride: Ride) -> Ride:
        row = RideModel()
        _apply_ride(row, ride)
        row = await self.rides.create(row)
        return _to_ride(row)

    async def get_ride(self, ride_id: int, for_update: bool = False) -> Optional[Ride]:
        row = await self.rides.get_by_id(ride_id, for_update=for_update)
        return _to_ride(row) if row else None

    async def list_rides(self) -> list[Ride]:
        return [_to_ride(row) for row in await self.rides.get_all()]

    async def list_vendor_rides(self, vendor_id: int) -> list[Ride]:
        return [_to_ride(row) for row in await self.rides.get_by_vendor(vendor_id)]

    async def list_assigned_before(self, cutoff: datetime) -> list[Ride]:
        return [_to_ride(row) for row in await self.rides.get_assigned_before(cutoff)]

    async def update_ride(self, ride: Ride) -> Ride:
        row = await self.rides.get_by_id(ride.id)
        _apply_ride(row, ride)
        await self.session.flush()
        return _to_ride(row)

    async def delete_ride(self, ride_id: int) -> None:
        await self.rides.delete(ride_id)

    async def add_passenger(self, passenger: RidePassenger) -> RidePassenger:
        row = await self.passengers.create(
            RidePassengerModel(**{f: getattr(passenger, f) for f in _PASSENGER_FIELDS})
        )
        return _to_passenger(row)

    async def get_passenger(self, passenger_id: int) -> Optional[RidePassenger]:
        row = await self.passengers.get_by_id(passenger_id)
        return _to_passenger(row) if row else None

    async def list_passengers(self, ride_id: int) -> list[RidePassenger]:
        return [_to_passenger(row) for row in await self.passengers.get_for_ride(ride_id)]

    async def update_passengers(self, passengers: list[RidePassenger]) -> None:
        for passenger in passengers:
            row = await self.passengers.get_by_id(passenger.id)
            for f in _PASSENGER_FIELDS:
                setattr(row, f, getattr(passenger, f))
        await self.session.flush()

    async def delete_passenger(self, passenger_id: int) -> None:
        await self.passengers.delete(passenger_id)

    async def commit(self) -> None:
        await self.session.commit()
