"""Unit tests for the ownership / authorization guard."""

import pytest

from src.domain import permissions
from src.domain.entities import Actor, Ride, RidePassenger
from src.domain.enums import Direction
from src.domain.errors import AuthorizationError, StateError

CREATOR, RIDER, STRANGER = Actor(1), Actor(2), Actor(3)


def _ride(direction=Direction.RETURN) -> Ride:
    return Ride(id=10, creator_id=CREATOR.user_id, direction=direction)


def _passenger(user_id: int) -> RidePassenger:
    return RidePassenger(id=100 + user_id, ride_id=10, user_id=user_id)


class TestPredicates:
    def test_only_creator_edits(self):
        assert permissions.can_edit_ride(CREATOR, _ride())
        assert not permissions.can_edit_ride(RIDER, _ride())

    def test_creator_deletes_ride_with_only_own_record(self):
        assert permissions.can_delete_ride(CREATOR, _ride(), [_passenger(1)])

    def test_delete_blocked_by_other_passengers(self):
        assert not permissions.can_delete_ride(
            CREATOR, _ride(), [_passenger(1), _passenger(2)]
        )

    def test_remove_passenger_creator_or_self(self):
        ride, record = _ride(), _passenger(RIDER.user_id)
        assert permissions.can_remove_passenger(CREATOR, ride, record)
        assert permissions.can_remove_passenger(RIDER, ride, record)
        assert not permissions.can_remove_passenger(STRANGER, ride, record)

    def test_manage_sequence_requires_return_direction(self):
        assert permissions.can_manage_sequence(CREATOR, _ride())
        assert not permissions.can_manage_sequence(CREATOR, _ride(Direction.OUTBOUND))
        assert not permissions.can_manage_sequence(RIDER, _ride())

    def test_vendor_role(self):
        assert permissions.can_assign_vendor(Actor(5, is_vendor=True))
        assert not permissions.can_assign_vendor(RIDER)


class TestRequireHelpers:
    def test_require_edit_raises(self):
        with pytest.raises(AuthorizationError):
            permissions.require_edit(STRANGER, _ride())

    def test_require_delete_non_creator(self):
        with pytest.raises(AuthorizationError):
            permissions.require_delete(RIDER, _ride(), [])

    def test_require_delete_with_passengers_is_state_error(self):
        with pytest.raises(StateError) as exc:
            permissions.require_delete(CREATOR, _ride(), [_passenger(2)])
        assert exc.value.reason == "ride_has_passengers"

    def test_require_manage_sequence_outbound(self):
        with pytest.raises(StateError) as exc:
            permissions.require_manage_sequence(CREATOR, _ride(Direction.OUTBOUND))
        assert exc.value.reason == "sequencing_not_applicable"

    def test_require_manage_sequence_non_creator(self):
        with pytest.raises(AuthorizationError):
            permissions.require_manage_sequence(RIDER, _ride(Direction.OUTBOUND))
