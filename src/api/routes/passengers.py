"""
Passenger & drop-off sequence endpoints
=======================================

POST   /api/v1/rides/{ride_id}/join                          -- join a ride
GET    /api/v1/rides/{ride_id}/passengers                    -- list passengers
PATCH  /api/v1/rides/{ride_id}/passengers/{pid}              -- edit party / location
DELETE /api/v1/rides/{ride_id}/passengers/{pid}              -- leave / remove
PATCH  /api/v1/rides/{ride_id}/passengers/{pid}/sequence     -- reorder drop-off
POST   /api/v1/rides/{ride_id}/lockSequence                  -- finalise drop-offs
"""

from typing import Optional, Union

from fastapi import APIRouter, Depends, Request, Response

from src.api.dependencies import (
    get_actor,
    get_optional_user,
    get_ride_service,
    get_store,
)
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    JoinRideRequest,
    LockSequenceResponse,
    PassengerPublic,
    PassengerResponse,
    PassengerUpdateRequest,
    SequenceUpdateRequest,
    passenger_response,
)
from src.domain.entities import Actor, RidePassenger, User
from src.domain.lifecycle import RideService
from src.domain.ports import RideStore

router = APIRouter(prefix="/rides", tags=["passengers"])


async def _with_users(
    store: RideStore, passengers: list[RidePassenger]
) -> list[PassengerResponse]:
    users: dict[int, Optional[User]] = {}
    for p in passengers:
        if p.user_id not in users:
            users[p.user_id] = await store.get_user(p.user_id)
    return [passenger_response(p, users[p.user_id]) for p in passengers]


@router.post(
    "/{ride_id}/join",
    status_code=201,
    response_model=PassengerResponse,
    summary="Join a ride",
    responses={400: {"description": "Not enough spots available"}},
)
@limiter.limit(RATE_LIMIT)
async def join_ride(
    request: Request,
    ride_id: int,
    body: JoinRideRequest,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
):
    passenger = await service.join_ride(
        actor,
        ride_id,
        dropoff_location=body.dropoff_location,
        passenger_count=body.passenger_count,
    )
    return passenger_response(passenger)


@router.get(
    "/{ride_id}/passengers",
    response_model=Union[list[PassengerResponse], list[PassengerPublic]],
    summary="List a ride's passengers in drop-off order",
    description=(
        "Authenticated callers get contact details; anonymous callers only "
        "see drop-off location and sequence."
    ),
)
@limiter.limit(RATE_LIMIT)
async def list_passengers(
    request: Request,
    ride_id: int,
    user: Optional[User] = Depends(get_optional_user),
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    passengers = await service.list_passengers(ride_id)
    if user is None:
        return [PassengerPublic.model_validate(p) for p in passengers]
    return await _with_users(store, passengers)


@router.patch(
    "/{ride_id}/passengers/{passenger_id}",
    response_model=PassengerResponse,
    summary="Change a passenger's party size or drop-off location",
)
@limiter.limit(RATE_LIMIT)
async def edit_passenger(
    request: Request,
    ride_id: int,
    passenger_id: int,
    body: PassengerUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
):
    passenger = await service.edit_passenger(
        actor,
        ride_id,
        passenger_id,
        passenger_count=body.passenger_count,
        dropoff_location=body.dropoff_location,
    )
    return passenger_response(passenger)


@router.delete(
    "/{ride_id}/passengers/{passenger_id}",
    status_code=204,
    summary="Leave a ride, or remove a passenger as its creator",
)
@limiter.limit(RATE_LIMIT)
async def remove_passenger(
    request: Request,
    ride_id: int,
    passenger_id: int,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
):
    await service.remove_passenger(actor, ride_id, passenger_id)
    return Response(status_code=204)


@router.patch(
    "/{ride_id}/passengers/{passenger_id}/sequence",
    response_model=list[PassengerResponse],
    summary="Move a passenger to a new drop-off position",
    description="Creator only, return rides only, rejected once locked.",
)
@limiter.limit(RATE_LIMIT)
async def reorder_passenger(
    request: Request,
    ride_id: int,
    passenger_id: int,
    body: SequenceUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    ordered = await service.reorder_passenger(
        actor, ride_id, passenger_id, body.sequence
    )
    return await _with_users(store, ordered)


@router.post(
    "/{ride_id}/lockSequence",
    response_model=LockSequenceResponse,
    summary="Lock the drop-off sequence",
    description="Idempotent.  Unsequenced passengers are numbered in join order.",
)
@limiter.limit(RATE_LIMIT)
async def lock_sequence(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    ordered = await service.lock_sequence(actor, ride_id)
    return LockSequenceResponse(passengers=await _with_users(store, ordered))
