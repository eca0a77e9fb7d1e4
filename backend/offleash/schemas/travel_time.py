# backend/offleash/schemas/travel_time.py

from pydantic import BaseModel


class TravelTimeRead(BaseModel):
    origin_location_id: int
    destination_location_id: int
    duration_minutes: int | None = None
    distance_meters: int | None = None
    source: str  # same_location / cache / provider / unavailable


class TravelInvalidateResponse(BaseModel):
    location_id: int
    deleted_keys: int
