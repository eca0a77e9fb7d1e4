# backend/offleash/services/bookings.py
"""
Single-creation path for bookings and blocks.

Every booking (one-off or a recurring occurrence) and every block goes
through here, so conflict rules live in one place:

Booking:
  ✗ overlaps a non-cancelled booking of the walker → "slot unavailable"
  ✗ overlaps a blocking block of the walker
  ✗ same customer + service + start already active (unique index)

Block:
  ✓ non-blocking blocks never conflict
  ✗ blocking block overlapping a blocking block or an active booking
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import BookingConflict, NotFoundError, RecipeValidationError
from .timeutils import as_utc, to_naive_utc

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE = "slot unavailable"
DUPLICATE_BOOKING = "duplicate booking"


def find_booking_conflict(
    db: Session,
    walker_id: int,
    start: datetime,
    end: datetime,
    customer_id: int | None = None,
    service_id: int | None = None,
) -> str | None:
    """Reason the booking cannot be created, or None."""
    if _get_overlapping_bookings(db, walker_id, start, end):
        return SLOT_UNAVAILABLE

    block = _get_overlapping_block(db, walker_id, start, end)
    if block:
        return f"walker unavailable: {block.reason}"

    if customer_id is not None and service_id is not None:
        if _get_duplicate_booking(db, customer_id, service_id, start):
            return DUPLICATE_BOOKING
    return None


def find_block_conflict(db: Session, walker_id: int, start: datetime, end: datetime) -> str | None:
    block = _get_overlapping_block(db, walker_id, start, end)
    if block:
        return f"overlaps existing block: {block.reason}"
    if _get_overlapping_bookings(db, walker_id, start, end):
        return "overlaps an existing booking"
    return None


def create_booking(
    db: Session,
    customer_id: int,
    walker_id: int,
    service_id: int,
    location_id: int,
    start: datetime,
    end: datetime | None = None,
    price_cents: int | None = None,
    notes: str | None = None,
    recurring_series_id: int | None = None,
    occurrence_number: int | None = None,
    status: str = "confirmed",
):
    """
    Conflict-checked insert of one booking, committed on success.

    Raises:
        NotFoundError: unknown walker / service / location
        BookingConflict: the slot is taken
    """
    walker = _get_walker(db, walker_id)
    if not walker:
        raise NotFoundError(f"walker {walker_id} not found")
    service = _get_service(db, service_id)
    if not service:
        raise NotFoundError(f"service {service_id} not found")
    location = _get_location(db, location_id)
    if not location:
        raise NotFoundError(f"location {location_id} not found")

    start = as_utc(start)
    end = as_utc(end) if end is not None else start + timedelta(minutes=service.duration_minutes)
    if end <= start:
        raise RecipeValidationError("booking end must be after start")

    reason = find_booking_conflict(db, walker_id, start, end, customer_id, service_id)
    if reason:
        raise BookingConflict(reason)

    from ..models.generated import Bookings
    booking = Bookings(
        organization_id=walker.organization_id,
        customer_id=customer_id,
        walker_id=walker_id,
        service_id=service_id,
        location_id=location_id,
        status=status,
        scheduled_start=to_naive_utc(start),
        scheduled_end=to_naive_utc(end),
        price_cents=service.base_price_cents if price_cents is None else price_cents,
        notes=notes,
        recurring_series_id=recurring_series_id,
        occurrence_number=occurrence_number,
    )
    db.add(booking)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise BookingConflict(DUPLICATE_BOOKING)
    db.refresh(booking)
    return booking


def create_block(
    db: Session,
    walker_id: int,
    reason: str,
    start: datetime,
    end: datetime,
    is_blocking: bool = True,
    recurrence_rule: str | None = None,
    series_key: str | None = None,
):
    """
    Conflict-checked insert of one block, committed on success.

    Raises:
        NotFoundError: unknown walker
        RecipeValidationError: end <= start
        BookingConflict: a blocking block would overlap existing commitments
    """
    if not _get_walker(db, walker_id):
        raise NotFoundError(f"walker {walker_id} not found")

    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise RecipeValidationError("block end must be after start")

    if is_blocking:
        conflict = find_block_conflict(db, walker_id, start, end)
        if conflict:
            raise BookingConflict(conflict)

    from ..models.generated import Blocks
    block = Blocks(
        walker_id=walker_id,
        reason=reason,
        start_time=to_naive_utc(start),
        end_time=to_naive_utc(end),
        is_blocking=1 if is_blocking else 0,
        recurrence_rule=recurrence_rule,
        series_key=series_key,
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    return block


def delete_block(db: Session, block_id: int) -> None:
    from ..models.generated import Blocks
    block = db.query(Blocks).filter(Blocks.id == block_id).first()
    if not block:
        raise NotFoundError(f"block {block_id} not found")
    db.delete(block)
    db.commit()


# ── DB helpers ───────────────────────────────────────────────────────────────


def _get_walker(db: Session, walker_id: int):
    from ..models.generated import Users
    return db.query(Users).filter(
        Users.id == walker_id,
        Users.role == "walker",
    ).first()


def _get_service(db: Session, service_id: int):
    from ..models.generated import Services
    return db.query(Services).filter(Services.id == service_id).first()


def _get_location(db: Session, location_id: int):
    from ..models.generated import Locations
    return db.query(Locations).filter(Locations.id == location_id).first()


def _get_overlapping_bookings(db: Session, walker_id: int, start: datetime, end: datetime) -> list:
    from ..models.generated import Bookings
    return db.query(Bookings).filter(
        Bookings.walker_id == walker_id,
        Bookings.status != "cancelled",
        Bookings.scheduled_start < to_naive_utc(end),
        Bookings.scheduled_end > to_naive_utc(start),
    ).all()


def _get_overlapping_block(db: Session, walker_id: int, start: datetime, end: datetime):
    from ..models.generated import Blocks
    return db.query(Blocks).filter(
        Blocks.walker_id == walker_id,
        Blocks.is_blocking == 1,
        Blocks.start_time < to_naive_utc(end),
        Blocks.end_time > to_naive_utc(start),
    ).order_by(Blocks.start_time).first()


def _get_duplicate_booking(db: Session, customer_id: int, service_id: int, start: datetime):
    from ..models.generated import Bookings
    return db.query(Bookings).filter(
        Bookings.customer_id == customer_id,
        Bookings.service_id == service_id,
        Bookings.scheduled_start == to_naive_utc(start),
        Bookings.status != "cancelled",
    ).first()
