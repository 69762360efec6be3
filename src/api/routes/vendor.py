"""
Vendor endpoints
================

GET /api/v1/vendor/rides -- rides assigned to the calling vendor
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_actor, get_ride_service
from src.api.middleware import RATE_LIMIT, limiter
from src.api.routes.rides import calculator
from src.api.schemas import RideResponse, ride_response
from src.domain.entities import Actor
from src.domain.lifecycle import RideService

router = APIRouter(prefix="/vendor", tags=["vendor"])


@router.get(
    "/rides",
    response_model=list[RideResponse],
    summary="List rides assigned to the calling vendor",
)
@limiter.limit(RATE_LIMIT)
async def vendor_rides(
    request: Request,
    actor: Actor = Depends(get_actor),
    service: RideService = Depends(get_ride_service),
):
    rides = await service.list_vendor_rides(actor)
    return [ride_response(r, calculator) for r in rides]
