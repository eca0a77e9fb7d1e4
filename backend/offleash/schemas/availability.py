# backend/offleash/schemas/availability.py
"""
Pydantic schemas for availability API.
"""

from datetime import date, datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AvailableSlotRead(BaseModel):
    """One bookable start time for a walker."""
    start: datetime
    end: datetime
    confidence: str  # high / medium / low
    travel_minutes: int | None = None
    travel_from_location_id: int | None = None
    travel_from_booking_id: int | None = None
    gap_minutes: int | None = None
    is_tight: bool = False
    warning: str | None = None
    estimated_travel_minutes: int | None = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class WalkerSlotsRead(BaseModel):
    walker_id: int
    walker_name: str
    date: date
    service_id: int
    travel_buffer_minutes: int
    slots: list[AvailableSlotRead]

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)
