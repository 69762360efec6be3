"""Domain enumerations and state-transition rules."""

import enum


class Direction(str, enum.Enum):
    OUTBOUND = "outbound"  # city -> resort
    RETURN = "return"  # resort -> city, multiple drop-offs


class RideStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


# State machine: maps current status -> set of valid next statuses.
# Deletion is out-of-band and handled by the lifecycle service.
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.OPEN: {RideStatus.ASSIGNED},
    RideStatus.ASSIGNED: {RideStatus.COMPLETED},
    RideStatus.COMPLETED: set(),
}

DELETABLE_STATUSES = {RideStatus.OPEN, RideStatus.ASSIGNED}
