"""
Ride endpoints
==============

POST   /api/v1/rides                 -- create a ride (creator = caller)
GET    /api/v1/rides                 -- list rides with creator details
GET    /api/v1/rides/{ride_id}       -- fetch one ride
PATCH  /api/v1/rides/{ride_id}       -- creator-only edit
DELETE /api/v1/rides/{ride_id}       -- creator-only delete
POST   /api/v1/rides/{ride_id}/assign   -- vendor claims the ride
POST   /api/v1/rides/{ride_id}/complete -- assigned vendor / creator completes
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from src.api.dependencies import get_actor, get_ride_service, get_store
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    RideCreateRequest,
    RideResponse,
    RideUpdateRequest,
    ride_response,
)
from src.config import settings
from src.domain.entities import Actor, Ride, User
from src.domain.lifecycle import RideService
from src.domain.ports import RideStore
from src.domain.pricing import CostCalculator

router = APIRouter(prefix="/rides", tags=["rides"])

calculator = CostCalculator(settings.stop_surcharge)


async def _with_creators(store: RideStore, rides: list[Ride]) -> list[RideResponse]:
    creators: dict[int, Optional[User]] = {}
    for ride in rides:
        if ride.creator_id not in creators:
            creators[ride.creator_id] = await store.get_user(ride.creator_id)
    return [ride_response(r, calculator, creators[r.creator_id]) for r in rides]


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Create a ride",
)
@limiter.limit(RATE_LIMIT)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    ride = await service.create_ride(
        actor,
        direction=body.direction,
        date=body.date,
        max_passengers=body.max_passengers,
        pickup_location=body.pickup_location,
        dropoff_locations=[d.to_domain() for d in body.dropoff_locations],
        cost=body.cost,
        additional_stops=body.additional_stops,
    )
    return ride_response(ride, calculator, await store.get_user(actor.user_id))


@router.get("", response_model=list[RideResponse], summary="List rides")
@limiter.limit(RATE_LIMIT)
async def list_rides(
    request: Request,
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    return await _with_creators(store, await service.list_rides())


@router.get("/{ride_id}", response_model=RideResponse, summary="Get a ride")
@limiter.limit(RATE_LIMIT)
async def get_ride(
    request: Request,
    ride_id: int,
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    ride = await service.get_ride(ride_id)
    return ride_response(ride, calculator, await store.get_user(ride.creator_id))


@router.patch(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Edit a ride",
    description=(
        "Creator only.  Editable: date, max_passengers, pickup_location, "
        "dropoff_locations, cost, additional_stops.  max_passengers cannot "
        "drop below the seats already taken."
    ),
)
@limiter.limit(RATE_LIMIT)
async def edit_ride(
    request: Request,
    ride_id: int,
    body: RideUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    ride = await service.edit_ride(actor, ride_id, body.changes())
    return ride_response(ride, calculator, await store.get_user(ride.creator_id))


@router.delete(
    "/{ride_id}",
    status_code=204,
    summary="Delete a ride",
    description="Creator only, and only while no other user has joined.",
)
@limiter.limit(RATE_LIMIT)
async def delete_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
):
    await service.delete_ride(actor, ride_id)
    return Response(status_code=204)


@router.post(
    "/{ride_id}/assign",
    response_model=RideResponse,
    summary="Assign the calling vendor to an open ride",
)
@limiter.limit(RATE_LIMIT)
async def assign_vendor(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    ride = await service.assign_vendor(actor, ride_id)
    return ride_response(ride, calculator, await store.get_user(ride.creator_id))


@router.post(
    "/{ride_id}/complete",
    response_model=RideResponse,
    summary="Mark an assigned ride as completed",
)
@limiter.limit(RATE_LIMIT)
async def complete_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
    store: RideStore = Depends(get_store),
):
    ride = await service.complete_ride(actor, ride_id)
    return ride_response(ride, calculator, await store.get_user(ride.creator_id))
