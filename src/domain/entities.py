"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride``: enforces valid lifecycle transitions
  (OPEN -> ASSIGNED -> COMPLETED).
- ``DropoffLocation`` is the single normalised form of a drop-off entry;
  the API layer builds it once and nothing downstream sees raw input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import Direction, RIDE_TRANSITIONS, RideStatus
from .errors import StateError


class InvalidStateTransition(StateError):
    """Raised when a ride status change violates the state machine."""

    def __init__(self, current: RideStatus, target: RideStatus):
        super().__init__(
            "invalid_transition",
            f"Cannot transition from {current.value} to {target.value}",
        )


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class DropoffLocation:
    location: str
    passenger_count: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"location": self.location, "passenger_count": self.passenger_count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DropoffLocation":
        return cls(
            location=data["location"],
            passenger_count=int(data.get("passenger_count", 1)),
        )


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a core operation."""

    user_id: int
    is_vendor: bool = False


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class User:
    id: Optional[int] = None
    username: str = ""
    password_hash: str = ""
    full_name: Optional[str] = None
    whatsapp_number: Optional[str] = None
    phone_number: Optional[str] = None
    payment_handle: Optional[str] = None
    is_vendor: bool = False
    company_name: Optional[str] = None
    vendor_details: Optional[dict[str, Any]] = None


@dataclass
class Ride:
    id: Optional[int] = None
    creator_id: int = 0
    direction: Direction = Direction.OUTBOUND
    date: Optional[datetime] = None
    max_passengers: int = 4
    current_passengers: int = 0
    pickup_location: str = ""
    dropoff_locations: list[DropoffLocation] = field(default_factory=list)
    status: RideStatus = RideStatus.OPEN
    vendor_id: Optional[int] = None
    cost: int = 80
    additional_stops: int = 0
    sequence_locked: bool = False

    @property
    def is_full(self) -> bool:
        return self.current_passengers >= self.max_passengers

    @property
    def is_sequenced(self) -> bool:
        """True when drop-off ordering applies to this ride."""
        return self.direction == Direction.RETURN

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = RIDE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(self.status, new_status)
        self.status = new_status


@dataclass
class RidePassenger:
    id: Optional[int] = None
    ride_id: int = 0
    user_id: int = 0
    dropoff_location: str = ""
    dropoff_sequence: Optional[int] = None
    passenger_count: int = 1
