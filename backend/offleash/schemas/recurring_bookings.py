# backend/offleash/schemas/recurring_bookings.py
"""
Pydantic schemas for recurring booking series.

Requests are snake_case; reports are camelCase.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .bookings import BookingRead


class RecurringSeriesCreate(BaseModel):
    customer_id: int
    walker_id: int
    service_id: int
    location_id: int

    frequency: str  # weekly / bi_weekly / monthly
    start_date: date
    time_of_day: str  # "HH:MM"
    day_of_week: Optional[int] = None  # 0 = Sunday; defaults to start_date

    # exactly one end condition
    end_date: Optional[date] = None
    total_occurrences: Optional[int] = None

    timezone: str = "America/Denver"
    notes: Optional[str] = None
    preview_only: bool = False

    model_config = {"from_attributes": True}


class ConflictRead(BaseModel):
    date: str
    reason: str


class RecurringSeriesReport(BaseModel):
    success: bool
    series_id: Optional[int] = None
    bookings_created: int
    total_planned: int
    conflicts: list[ConflictRead]
    indefinite: bool = False
    status: str
    preview_dates: list[str] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecurringSeriesRead(BaseModel):
    id: int
    customer_id: int
    walker_id: int
    service_id: int
    location_id: int
    frequency: str
    day_of_week: int
    time_of_day: str
    timezone: str
    start_date: date
    end_date: Optional[date] = None
    total_occurrences: Optional[int] = None
    is_active: bool
    status: str
    price_cents_per_booking: int
    default_notes: Optional[str] = None
    next_occurrence: Optional[datetime] = None
    total_bookings: int = 0

    model_config = {"from_attributes": True}


class RecurringSeriesDetail(BaseModel):
    series: RecurringSeriesRead
    walker_name: str
    service_name: str
    location_address: str
    bookings: list[BookingRead]


class CancelSeriesRequest(BaseModel):
    scope: str  # all_future / entire_series


class CancelSeriesResponse(BaseModel):
    bookings_cancelled: int
    series_deactivated: bool
