# backend/offleash/routers/travel_time.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_travel_service
from ..models.generated import Locations as DBLocations, Users as DBUsers
from ..schemas.travel_time import TravelInvalidateResponse, TravelTimeRead
from ..services.availability import TravelTimeService

router = APIRouter(prefix="/travel-time", tags=["travel_time"])


@router.get("/", response_model=TravelTimeRead)
def get_travel_time(
    origin_location_id: int,
    destination_location_id: int,
    db: Session = Depends(get_db),
    travel: TravelTimeService = Depends(get_travel_service),
):
    """Base travel time (no peak adjustment) through the cache."""
    origin = db.get(DBLocations, origin_location_id)
    destination = db.get(DBLocations, destination_location_id)
    if not origin or not destination:
        raise HTTPException(status_code=404, detail="Location not found")

    # Fetch-hour TTL follows the destination owner's local time
    owner = db.get(DBUsers, destination.user_id)
    estimate = travel.lookup(origin, destination, tz_name=owner.timezone if owner else None)
    return TravelTimeRead(
        origin_location_id=origin_location_id,
        destination_location_id=destination_location_id,
        duration_minutes=estimate.minutes,
        distance_meters=estimate.distance_meters,
        source=estimate.source,
    )


@router.post("/invalidate", response_model=TravelInvalidateResponse)
def invalidate_travel_time(
    location_id: int,
    travel: TravelTimeService = Depends(get_travel_service),
):
    """Drop cached pairs touching a location (e.g. after an address change)."""
    deleted = travel.invalidate_location(location_id)
    return TravelInvalidateResponse(location_id=location_id, deleted_keys=deleted)
