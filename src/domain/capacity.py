"""
Seat arithmetic for a ride.

All functions are pure and recompute from the passenger records they are
given; callers pass the records read under the ride lock, never the
cached ``Ride.current_passengers``.
"""

from __future__ import annotations

from typing import Iterable

from .entities import Ride, RidePassenger


def occupied_seats(passengers: Iterable[RidePassenger]) -> int:
    return sum(p.passenger_count for p in passengers)


def available_seats(ride: Ride, passengers: Iterable[RidePassenger]) -> int:
    """Seats still free on *ride*.  Never negative."""
    return max(0, ride.max_passengers - occupied_seats(passengers))


def can_accommodate(
    ride: Ride, passengers: Iterable[RidePassenger], requested: int
) -> bool:
    return available_seats(ride, passengers) >= requested
