# backend/offleash/routers/calendar.py
"""
Walker calendar: blocks (one-off and recurring).

POST   /calendar/events            - one block (409 on conflict)
DELETE /calendar/events/{id}       - hard delete
POST   /calendar/recurring-blocks  - WEEKLY:<days>:<weeks|INDEFINITE>
GET    /blocks                     - list blocks of a walker
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Blocks as DBBlocks
from ..schemas.calendar import (
    BlockCreate,
    BlockRead,
    RecurringBlockCreate,
    RecurringBlocksReport,
)
from ..services import bookings as booking_service
from ..services.clock import Clock, get_clock
from ..services.errors import BookingConflict, NotFoundError, RecipeValidationError
from ..services.recurring import BlockRecipe, WeeklyRule, materialize_recurring_blocks

router = APIRouter(tags=["calendar"])


@router.get("/blocks", response_model=list[BlockRead])
def list_blocks(walker_id: int | None = None, db: Session = Depends(get_db)):
    query = db.query(DBBlocks)
    if walker_id is not None:
        query = query.filter(DBBlocks.walker_id == walker_id)
    return query.order_by(DBBlocks.start_time).all()


@router.post("/calendar/events", response_model=BlockRead, status_code=status.HTTP_201_CREATED)
def create_block(data: BlockCreate, db: Session = Depends(get_db)):
    try:
        rule = str(WeeklyRule.parse(data.recurrence_rule)) if data.recurrence_rule else None
        return booking_service.create_block(
            db,
            walker_id=data.walker_id,
            reason=data.title or "Blocked",
            start=data.start_time,
            end=data.end_time,
            is_blocking=data.is_blocking,
            recurrence_rule=rule,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecipeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BookingConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.reason)


@router.delete("/calendar/events/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_block(id: int, db: Session = Depends(get_db)):
    try:
        booking_service.delete_block(db, id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Not found")


@router.post(
    "/calendar/recurring-blocks",
    response_model=RecurringBlocksReport,
    status_code=status.HTTP_201_CREATED,
)
def create_recurring_blocks(
    data: RecurringBlockCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        recipe = BlockRecipe(
            walker_id=data.walker_id,
            start_time=data.start_time,
            end_time=data.end_time,
            days=tuple(data.days_of_week),
            weeks_ahead=data.weeks_ahead,
            indefinite=data.indefinite,
            reason=data.title or "Blocked",
            is_blocking=data.is_blocking,
        )
        report = materialize_recurring_blocks(db, recipe, clock=clock)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecipeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RecurringBlocksReport.model_validate(report.to_dict())
