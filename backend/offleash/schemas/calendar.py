# backend/offleash/schemas/calendar.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .recurring_bookings import ConflictRead


class BlockCreate(BaseModel):
    walker_id: int
    title: Optional[str] = None
    start_time: datetime
    end_time: datetime
    is_blocking: bool = True
    recurrence_rule: Optional[str] = None

    model_config = {"from_attributes": True}


class BlockRead(BaseModel):
    id: int
    walker_id: int
    reason: str
    start_time: datetime
    end_time: datetime
    is_blocking: bool
    recurrence_rule: Optional[str] = None
    series_key: Optional[str] = None

    model_config = {"from_attributes": True}


class RecurringBlockCreate(BaseModel):
    walker_id: int
    title: Optional[str] = None
    start_time: str  # "HH:MM", walker local time
    end_time: str
    days_of_week: list[int] = Field(default_factory=list)
    weeks_ahead: int = 52
    indefinite: bool = False
    is_blocking: bool = True

    model_config = {"from_attributes": True}


class RecurringBlocksReport(BaseModel):
    success: bool
    series_key: Optional[str] = None
    blocks_created: int
    total_planned: int
    conflicts: list[ConflictRead]
    indefinite: bool
    status: str
    preview_dates: list[str] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
