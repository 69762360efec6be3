"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``            -- riders and vendors
* ``rides``            -- scheduled shared trips
* ``ride_passengers``  -- join records binding a user's party to a ride

Indexes
-------
* **B-Tree** on ``rides.status``, ``rides.creator_id``, ``rides.vendor_id``
  and ``ride_passengers.ride_id`` / ``user_id`` for the look-ups used by
  the API and the completion worker.

Constraints
-----------
* ``ck_rides_capacity`` keeps ``current_passengers <= max_passengers`` at
  the database level as well as in the lifecycle service.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import Direction, RideStatus


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(120), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(120), nullable=True)
    whatsapp_number = Column(String(40), nullable=True)
    phone_number = Column(String(40), nullable=True)
    payment_handle = Column(String(120), nullable=True)
    is_vendor = Column(Boolean, default=False, nullable=False)
    company_name = Column(String(255), nullable=True)
    vendor_details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    direction = Column(Enum(Direction), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    max_passengers = Column(Integer, nullable=False)
    current_passengers = Column(Integer, default=0, nullable=False)
    pickup_location = Column(Text, nullable=False)

    # [{"location": str, "passenger_count": int}, ...]
    dropoff_locations = Column(JSON, nullable=False, default=list)

    status = Column(Enum(RideStatus), default=RideStatus.OPEN, nullable=False)
    vendor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    cost = Column(Integer, default=80, nullable=False)
    additional_stops = Column(Integer, default=0, nullable=False)
    sequence_locked = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_creator", "creator_id"),
        Index("idx_rides_vendor", "vendor_id"),
        CheckConstraint(
            "current_passengers <= max_passengers", name="ck_rides_capacity"
        ),
    )


class RidePassengerModel(Base):
    __tablename__ = "ride_passengers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    dropoff_location = Column(Text, nullable=False)
    dropoff_sequence = Column(Integer, nullable=True)
    passenger_count = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_ride_passengers_ride", "ride_id"),
        Index("idx_ride_passengers_user", "user_id"),
    )
