"""
Drop-off Sequence Engine
========================

Governs the order in which passengers are let off on a return ride.

States (per ride)
-----------------
* **Unsequenced** -- ``ride.sequence_locked`` is False.  Records may carry a
  number (after a reorder) or ``None`` (fresh joins).  Reordering allowed.
* **Locked** -- ``ride.sequence_locked`` is True and the records' numbers
  are exactly ``{1..N}``.  Terminal: there is no unlock.

The lock state is stored on the ride rather than derived from null
sequence numbers, because a reorder numbers every record and must still
leave the ride unlocked.

Ordering rule
-------------
The *current order* of a ride is: records with a sequence number sorted by
it, then records without one in join (storage) order.  Ties keep join
order.  ``lock`` therefore fills missing numbers "first joined, first
sequenced" without disturbing any manually arranged records.

All functions mutate the given ``RidePassenger`` objects in place and
return them in their resulting order.  Persisting is the caller's job.

Complexity: O(N log N) per call, N = passenger records on the ride.
"""

from __future__ import annotations

from typing import Optional

from .entities import Ride, RidePassenger
from .errors import NotFoundError, StateError


def current_order(passengers: list[RidePassenger]) -> list[RidePassenger]:
    """Return *passengers* in drop-off order (see module docstring)."""
    return sorted(
        passengers,
        key=lambda p: (
            p.dropoff_sequence is None,
            p.dropoff_sequence or 0,
        ),
    )


def _renumber(ordered: list[RidePassenger]) -> list[RidePassenger]:
    for position, passenger in enumerate(ordered, start=1):
        passenger.dropoff_sequence = position
    return ordered


def reorder(
    ride: Ride,
    passengers: list[RidePassenger],
    passenger_id: int,
    new_position: int,
) -> list[RidePassenger]:
    """
    Move *passenger_id* to *new_position* (1-based, clamped to ``[1, N]``)
    and renumber the whole list ``1..N``.

    Raises ``StateError`` once the ride is locked, before touching any
    record.
    """
    if ride.sequence_locked:
        raise StateError("sequence_locked", "Drop-off sequence is already locked")

    ordered = current_order(passengers)
    target = next((p for p in ordered if p.id == passenger_id), None)
    if target is None:
        raise NotFoundError("passenger", passenger_id)

    ordered.remove(target)
    index = min(max(new_position, 1), len(ordered) + 1) - 1
    ordered.insert(index, target)
    return _renumber(ordered)


def lock(ride: Ride, passengers: list[RidePassenger]) -> list[RidePassenger]:
    """
    Finalise the drop-off order.  Idempotent: a locked ride is returned
    unchanged.
    """
    if ride.sequence_locked:
        return current_order(passengers)

    ordered = _renumber(current_order(passengers))
    ride.sequence_locked = True
    return ordered


def extend(
    ride: Ride, passengers: list[RidePassenger], newcomer: RidePassenger
) -> Optional[int]:
    """
    Give a record joining a locked ride the next number after the current
    maximum.  Unlocked rides leave newcomers unsequenced.
    """
    if not ride.sequence_locked:
        newcomer.dropoff_sequence = None
        return None
    taken = [p.dropoff_sequence or 0 for p in passengers if p is not newcomer]
    newcomer.dropoff_sequence = max(taken, default=0) + 1
    return newcomer.dropoff_sequence


def compact(passengers: list[RidePassenger]) -> list[RidePassenger]:
    """Close gaps left by removals, preserving the current order."""
    return _renumber(current_order(passengers))
