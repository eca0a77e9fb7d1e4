# backend/offleash/schemas/working_hours.py

from pydantic import BaseModel, Field


class WorkingHoursDay(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday
    start_time: str  # "HH:MM"
    end_time: str
    is_active: bool = True

    model_config = {"from_attributes": True}


class WorkingHoursUpdate(BaseModel):
    days: list[WorkingHoursDay]


class WorkingHoursRead(BaseModel):
    walker_id: int
    timezone: str
    days: list[WorkingHoursDay]
