# backend/offleash/schemas/bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class BookingCreate(BaseModel):
    customer_id: int
    walker_id: int
    service_id: int
    location_id: int

    scheduled_start: datetime
    scheduled_end: Optional[datetime] = None  # defaults to start + service duration

    price_cents: Optional[int] = None  # defaults to service base price
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int

    organization_id: int
    customer_id: int
    walker_id: int
    service_id: int
    location_id: int

    status: str
    scheduled_start: datetime
    scheduled_end: datetime

    price_cents: int
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    recurring_series_id: Optional[int] = None
    occurrence_number: Optional[int] = None

    model_config = {"from_attributes": True}
