# backend/offleash/routers/working_hours.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Users as DBUsers, WorkingHours as DBWorkingHours
from ..schemas.working_hours import WorkingHoursDay, WorkingHoursRead, WorkingHoursUpdate
from ..services.timeutils import minutes_to_time_str, time_str_to_minutes

router = APIRouter(prefix="/working-hours", tags=["working_hours"])


@router.get("/{walker_id}", response_model=WorkingHoursRead)
def get_working_hours(walker_id: int, db: Session = Depends(get_db)):
    walker = _get_walker(db, walker_id)
    rows = db.query(DBWorkingHours).filter(
        DBWorkingHours.walker_id == walker_id,
    ).order_by(DBWorkingHours.day_of_week).all()
    return WorkingHoursRead(
        walker_id=walker_id,
        timezone=walker.timezone,
        days=[WorkingHoursDay.model_validate(r) for r in rows],
    )


@router.put("/{walker_id}", response_model=WorkingHoursRead)
def put_working_hours(walker_id: int, data: WorkingHoursUpdate, db: Session = Depends(get_db)):
    """Upsert the given days. Days not listed are left untouched."""
    _get_walker(db, walker_id)

    # Normalized to zero-padded HH:MM: the table compares times as text
    normalized = {}
    for day in data.days:
        if day.day_of_week in normalized:
            raise HTTPException(status_code=400, detail=f"day {day.day_of_week} listed twice")
        try:
            start, end = time_str_to_minutes(day.start_time), time_str_to_minutes(day.end_time)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if end <= start:
            raise HTTPException(status_code=400, detail="end_time must be after start_time")
        normalized[day.day_of_week] = (minutes_to_time_str(start), minutes_to_time_str(end))

    for day in data.days:
        row = db.query(DBWorkingHours).filter(
            DBWorkingHours.walker_id == walker_id,
            DBWorkingHours.day_of_week == day.day_of_week,
        ).first()
        if row is None:
            row = DBWorkingHours(walker_id=walker_id, day_of_week=day.day_of_week)
            db.add(row)
        row.start_time, row.end_time = normalized[day.day_of_week]
        row.is_active = 1 if day.is_active else 0
    db.commit()

    return get_working_hours(walker_id, db)


def _get_walker(db: Session, walker_id: int):
    walker = db.query(DBUsers).filter(
        DBUsers.id == walker_id,
        DBUsers.role == "walker",
    ).first()
    if not walker:
        raise HTTPException(status_code=404, detail="Walker not found")
    return walker
