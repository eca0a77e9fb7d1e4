# backend/offleash/routers/recurring_bookings.py
"""
Recurring booking series.

POST /recurring-bookings               - create (or preview / replay)
GET  /recurring-bookings?customer_id   - list customer's series
GET  /recurring-bookings/{id}          - detail with occurrences
POST /recurring-bookings/{id}/cancel   - all_future / entire_series
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import (
    Locations as DBLocations,
    Services as DBServices,
    Users as DBUsers,
)
from ..schemas.bookings import BookingRead
from ..schemas.recurring_bookings import (
    CancelSeriesRequest,
    CancelSeriesResponse,
    RecurringSeriesCreate,
    RecurringSeriesDetail,
    RecurringSeriesRead,
    RecurringSeriesReport,
)
from ..services.clock import Clock, get_clock
from ..services.errors import BookingConflict, NotFoundError, RecipeValidationError
from ..services.recurring import (
    SeriesRecipe,
    cancel_series,
    get_series,
    list_customer_series,
    materialize_series,
    next_occurrence,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring-bookings", tags=["recurring_bookings"])


@router.post("/", response_model=RecurringSeriesReport, status_code=status.HTTP_201_CREATED)
def create_recurring_series(
    data: RecurringSeriesCreate,
    response: Response,
    idempotency_key: str | None = Header(default=None, alias="X-Idempotency-Key"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    recipe = SeriesRecipe(
        customer_id=data.customer_id,
        walker_id=data.walker_id,
        service_id=data.service_id,
        location_id=data.location_id,
        frequency=data.frequency,
        start_date=data.start_date,
        time_of_day=data.time_of_day,
        day_of_week=data.day_of_week,
        end_date=data.end_date,
        total_occurrences=data.total_occurrences,
        timezone=data.timezone,
        notes=data.notes,
    )
    try:
        report = materialize_series(
            db, recipe,
            idempotency_key=idempotency_key or None,
            clock=clock,
            preview=data.preview_only,
        )
    except RecipeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BookingConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.reason)

    if report.replayed or data.preview_only:
        response.status_code = status.HTTP_200_OK
    return RecurringSeriesReport.model_validate(report.to_dict())


@router.get("/", response_model=list[RecurringSeriesRead])
def list_recurring_series(
    customer_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    now = clock.now()
    return [_series_read(s, now) for s in list_customer_series(db, customer_id)]


@router.get("/{id}", response_model=RecurringSeriesDetail)
def get_recurring_series(
    id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        series = get_series(db, id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Not found")

    walker = db.get(DBUsers, series.walker_id)
    service = db.get(DBServices, series.service_id)
    location = db.get(DBLocations, series.location_id)
    return RecurringSeriesDetail(
        series=_series_read(series, clock.now()),
        walker_name=walker.full_name if walker else "Unknown",
        service_name=service.name if service else "Unknown",
        location_address=location.address if location else "Unknown",
        bookings=[BookingRead.model_validate(b) for b in series.bookings],
    )


@router.post("/{id}/cancel", response_model=CancelSeriesResponse)
def cancel_recurring_series(
    id: int,
    data: CancelSeriesRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        cancelled, deactivated = cancel_series(db, id, data.scope, clock=clock)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Not found")
    except RecipeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return CancelSeriesResponse(bookings_cancelled=cancelled, series_deactivated=deactivated)


# ── Helpers ──────────────────────────────────────────────────────────────────


def _series_read(series, now) -> RecurringSeriesRead:
    upcoming = next_occurrence(series, now)
    read = RecurringSeriesRead.model_validate(series)
    read.next_occurrence = upcoming.scheduled_start if upcoming else None
    read.total_bookings = sum(1 for b in series.bookings if b.status != "cancelled")
    return read
