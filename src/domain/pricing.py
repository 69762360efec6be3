"""
Ride cost model  (Strategy Pattern)
===================================

Formula
-------
Total = Base_Cost + Additional_Stops x Stop_Surcharge

Per-person share is the total split across either the ride's capacity
(``CapacitySplit``, what an organizer quotes up front) or the seats
actually taken (``OccupancySplit``, what riders end up paying).

Complexity: O(1) per calculation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .entities import Ride


def total_cost(ride: Ride, stop_surcharge: int) -> int:
    return ride.cost + ride.additional_stops * stop_surcharge


# ── Strategy hierarchy ────────────────────────────────────────────────


class SplitStrategy(ABC):
    @abstractmethod
    def divisor(self, ride: Ride) -> int: ...

    def per_person(self, ride: Ride, stop_surcharge: int) -> float:
        return round(total_cost(ride, stop_surcharge) / max(self.divisor(ride), 1), 2)


class CapacitySplit(SplitStrategy):
    def divisor(self, ride: Ride) -> int:
        return ride.max_passengers


class OccupancySplit(SplitStrategy):
    def divisor(self, ride: Ride) -> int:
        return ride.current_passengers


# ── Facade ────────────────────────────────────────────────────────────


class CostCalculator:
    """High-level API used by the API layer to decorate ride responses."""

    def __init__(self, stop_surcharge: int = 5):
        self.stop_surcharge = stop_surcharge

    def quote(self, ride: Ride) -> dict[str, float]:
        return {
            "total_cost": total_cost(ride, self.stop_surcharge),
            "stops_surcharge": ride.additional_stops * self.stop_surcharge,
            "cost_per_person": CapacitySplit().per_person(ride, self.stop_surcharge),
            "cost_per_occupant": OccupancySplit().per_person(
                ride, self.stop_surcharge
            ),
        }
