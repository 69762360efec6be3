"""
Ownership / authorization guard.

The ``can_*`` predicates are pure and side-effect free.  The ``require_*``
helpers wrap them and raise, so a failed check is never a silent no-op.
"""

from __future__ import annotations

from typing import Iterable

from .entities import Actor, Ride, RidePassenger
from .enums import Direction
from .errors import AuthorizationError, StateError


def can_edit_ride(actor: Actor, ride: Ride) -> bool:
    return actor.user_id == ride.creator_id


def has_foreign_passengers(ride: Ride, passengers: Iterable[RidePassenger]) -> bool:
    return any(p.user_id != ride.creator_id for p in passengers)


def can_delete_ride(
    actor: Actor, ride: Ride, passengers: Iterable[RidePassenger]
) -> bool:
    return can_edit_ride(actor, ride) and not has_foreign_passengers(ride, passengers)


def can_remove_passenger(actor: Actor, ride: Ride, passenger: RidePassenger) -> bool:
    return actor.user_id in (ride.creator_id, passenger.user_id)


def can_manage_sequence(actor: Actor, ride: Ride) -> bool:
    return actor.user_id == ride.creator_id and ride.direction == Direction.RETURN


def can_assign_vendor(actor: Actor) -> bool:
    return actor.is_vendor


def can_complete_ride(actor: Actor, ride: Ride) -> bool:
    return actor.user_id in (ride.vendor_id, ride.creator_id)


# ── Raising helpers ───────────────────────────────────────────────────


def require_edit(actor: Actor, ride: Ride) -> None:
    if not can_edit_ride(actor, ride):
        raise AuthorizationError("Not authorized to edit this ride")


def require_delete(
    actor: Actor, ride: Ride, passengers: list[RidePassenger]
) -> None:
    if can_delete_ride(actor, ride, passengers):
        return
    if not can_edit_ride(actor, ride):
        raise AuthorizationError("Not authorized to delete this ride")
    raise StateError(
        "ride_has_passengers",
        "Cannot delete a ride other passengers have joined",
    )


def require_remove_passenger(
    actor: Actor, ride: Ride, passenger: RidePassenger
) -> None:
    if not can_remove_passenger(actor, ride, passenger):
        raise AuthorizationError("Not authorized to modify this passenger")


def require_manage_sequence(actor: Actor, ride: Ride) -> None:
    if can_manage_sequence(actor, ride):
        return
    if actor.user_id != ride.creator_id:
        raise AuthorizationError("Only the ride creator can manage the sequence")
    raise StateError(
        "sequencing_not_applicable",
        "Drop-off sequencing only applies to return rides",
    )


def require_vendor(actor: Actor) -> None:
    if not can_assign_vendor(actor):
        raise AuthorizationError("Vendor role required")


def require_complete(actor: Actor, ride: Ride) -> None:
    if not can_complete_ride(actor, ride):
        raise AuthorizationError("Not authorized to complete this ride")
