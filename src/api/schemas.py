"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from src.domain.entities import DropoffLocation, Ride, RidePassenger, User
from src.domain.enums import Direction
from src.domain.pricing import CostCalculator


# ── Requests ──────────────────────────────────────────────────────────


class DropoffLocationIn(BaseModel):
    location: str = Field(..., min_length=1)
    passenger_count: int = Field(1, ge=1)

    def to_domain(self) -> DropoffLocation:
        return DropoffLocation(self.location, self.passenger_count)


def _normalise_dropoffs(value: Any) -> Any:
    """Accept bare strings as single-passenger drop-off entries."""
    if isinstance(value, list):
        return [{"location": v} if isinstance(v, str) else v for v in value]
    return value


class RideCreateRequest(BaseModel):
    direction: Direction
    date: datetime
    max_passengers: int = Field(..., ge=1)
    pickup_location: str = Field(..., min_length=1)
    dropoff_locations: list[DropoffLocationIn] = []
    cost: Optional[int] = Field(None, ge=0)
    additional_stops: Optional[int] = Field(
        None,
        ge=0,
        description="Defaults to one stop per drop-off beyond the first.",
    )

    @field_validator("dropoff_locations", mode="before")
    @classmethod
    def accept_bare_strings(cls, value: Any) -> Any:
        return _normalise_dropoffs(value)


class RideUpdateRequest(BaseModel):
    date: Optional[datetime] = None
    max_passengers: Optional[int] = Field(None, ge=1)
    pickup_location: Optional[str] = Field(None, min_length=1)
    dropoff_locations: Optional[list[DropoffLocationIn]] = None
    cost: Optional[int] = Field(None, ge=0)
    additional_stops: Optional[int] = Field(None, ge=0)

    @field_validator("dropoff_locations", mode="before")
    @classmethod
    def accept_bare_strings(cls, value: Any) -> Any:
        return _normalise_dropoffs(value)

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True, exclude_none=True)
        if self.dropoff_locations is not None:
            data["dropoff_locations"] = [d.to_domain() for d in self.dropoff_locations]
        return data


class JoinRideRequest(BaseModel):
    dropoff_location: str = Field(..., min_length=1)
    passenger_count: int = Field(1, ge=1)


class PassengerUpdateRequest(BaseModel):
    dropoff_location: Optional[str] = Field(None, min_length=1)
    passenger_count: Optional[int] = Field(None, ge=1)


class SequenceUpdateRequest(BaseModel):
    sequence: int


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=120)
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = None
    whatsapp_number: Optional[str] = None
    phone_number: Optional[str] = None
    payment_handle: Optional[str] = None
    is_vendor: bool = False
    company_name: Optional[str] = None
    vendor_details: Optional[dict[str, Any]] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    whatsapp_number: Optional[str] = None
    phone_number: Optional[str] = None
    payment_handle: Optional[str] = None
    company_name: Optional[str] = None
    vendor_details: Optional[dict[str, Any]] = None


class PasswordResetRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


# ── Responses ─────────────────────────────────────────────────────────


class UserSummary(BaseModel):
    """Contact card shown next to rides and passengers."""

    id: int
    username: str
    full_name: Optional[str] = None
    whatsapp_number: Optional[str] = None
    phone_number: Optional[str] = None
    payment_handle: Optional[str] = None

    model_config = {"from_attributes": True}


class UserResponse(UserSummary):
    is_vendor: bool = False
    company_name: Optional[str] = None
    vendor_details: Optional[dict[str, Any]] = None


class TokenResponse(BaseModel):
    token: str
    user: UserResponse


class DropoffLocationOut(BaseModel):
    location: str
    passenger_count: int

    model_config = {"from_attributes": True}


class RideResponse(BaseModel):
    id: int
    creator_id: int
    direction: Direction
    date: datetime
    max_passengers: int
    current_passengers: int
    pickup_location: str
    dropoff_locations: list[DropoffLocationOut]
    status: str
    vendor_id: Optional[int] = None
    cost: int
    additional_stops: int
    sequence_locked: bool
    is_full: bool
    total_cost: int
    stops_surcharge: int
    cost_per_person: float
    cost_per_occupant: float
    creator: Optional[UserSummary] = None


class PassengerPublic(BaseModel):
    """Reduced view served to anonymous callers."""

    id: int
    ride_id: int
    dropoff_location: str
    dropoff_sequence: Optional[int] = None

    model_config = {"from_attributes": True}


class PassengerResponse(PassengerPublic):
    user_id: int
    passenger_count: int
    user: Optional[UserSummary] = None


class LockSequenceResponse(BaseModel):
    success: bool = True
    passengers: list[PassengerResponse] = []


class HealthResponse(BaseModel):
    status: str = "ok"
    storage: str = "sql"


class ErrorResponse(BaseModel):
    detail: str


# ── Builders ──────────────────────────────────────────────────────────


def ride_response(
    ride: Ride, calculator: CostCalculator, creator: Optional[User] = None
) -> RideResponse:
    quote = calculator.quote(ride)
    return RideResponse(
        id=ride.id,
        creator_id=ride.creator_id,
        direction=ride.direction,
        date=ride.date,
        max_passengers=ride.max_passengers,
        current_passengers=ride.current_passengers,
        pickup_location=ride.pickup_location,
        dropoff_locations=[
            DropoffLocationOut.model_validate(d) for d in ride.dropoff_locations
        ],
        status=ride.status.value,
        vendor_id=ride.vendor_id,
        cost=ride.cost,
        additional_stops=ride.additional_stops,
        sequence_locked=ride.sequence_locked,
        is_full=ride.is_full,
        total_cost=quote["total_cost"],
        stops_surcharge=quote["stops_surcharge"],
        cost_per_person=quote["cost_per_person"],
        cost_per_occupant=quote["cost_per_occupant"],
        creator=UserSummary.model_validate(creator) if creator else None,
    )


def passenger_response(
    passenger: RidePassenger, user: Optional[User] = None
) -> PassengerResponse:
    return PassengerResponse(
        id=passenger.id,
        ride_id=passenger.ride_id,
        user_id=passenger.user_id,
        dropoff_location=passenger.dropoff_location,
        dropoff_sequence=passenger.dropoff_sequence,
        passenger_count=passenger.passenger_count,
        user=UserSummary.model_validate(user) if user else None,
    )
