# backend/offleash/routers/bookings.py
# PATCH = 405, DELETE = 405 (cancel via recurring series or status flow)

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Bookings as DBBookings
from ..schemas.bookings import (
    BookingCreate,
    BookingRead,
)
from ..services import bookings as booking_service
from ..services.errors import BookingConflict, NotFoundError, RecipeValidationError

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    walker_id: int | None = None,
    customer_id: int | None = None,
    db: Session = Depends(get_db),
):
    query = db.query(DBBookings)
    if walker_id is not None:
        query = query.filter(DBBookings.walker_id == walker_id)
    if customer_id is not None:
        query = query.filter(DBBookings.customer_id == customer_id)
    return query.order_by(DBBookings.scheduled_start).all()


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBBookings, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
):
    try:
        return booking_service.create_booking(
            db,
            customer_id=data.customer_id,
            walker_id=data.walker_id,
            service_id=data.service_id,
            location_id=data.location_id,
            start=data.scheduled_start,
            end=data.scheduled_end,
            price_cents=data.price_cents,
            notes=data.notes,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecipeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BookingConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.reason)


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
