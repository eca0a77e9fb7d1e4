# backend/offleash/routers/availability.py
"""
Availability API.

GET /availability/slots - bookable slots per walker for a service at a location
"""

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_travel_service
from ..schemas.availability import AvailableSlotRead, WalkerSlotsRead
from ..services.availability import TravelTimeService, find_available_slots
from ..services.clock import Clock, get_clock
from ..services.errors import NotFoundError, RecipeValidationError

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/slots", response_model=list[WalkerSlotsRead])
def get_available_slots(
    service_id: int,
    location_id: int,
    target_date: date = Query(alias="date"),
    walker_id: int | None = None,
    db: Session = Depends(get_db),
    travel: TravelTimeService = Depends(get_travel_service),
    clock: Clock = Depends(get_clock),
):
    """One slot list per eligible walker (or only walker_id)."""
    try:
        results = find_available_slots(
            db, service_id, location_id, target_date,
            walker_id=walker_id, travel=travel, clock=clock,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecipeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return [
        WalkerSlotsRead(
            walker_id=r.walker_id,
            walker_name=r.walker_name,
            date=r.date,
            service_id=r.service_id,
            travel_buffer_minutes=r.travel_buffer_minutes,
            slots=[AvailableSlotRead.model_validate(asdict(s)) for s in r.slots],
        )
        for r in results
    ]
