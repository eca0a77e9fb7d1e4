# backend/offleash/services/availability/config.py
"""
Availability and traffic configuration.
"""

from dataclasses import dataclass
from functools import lru_cache
from math import ceil


@dataclass(frozen=True)
class AvailabilityConfig:
    """
    Configuration for slot generation.

    Attributes:
        slot_step_minutes: Candidate start granularity (15/30/60)
        travel_buffer_minutes: Default gap below which a slot is tight
            (organization settings may override)
        tight_margin_minutes: Extra minutes on top of travel time before a
            slot stops being tight
        min_notice_hours: Slots starting sooner than now + this are hidden
        max_advance_days: How many days ahead slots can be queried
    """
    slot_step_minutes: int = 15  # 15 / 30 / 60
    travel_buffer_minutes: int = 15
    tight_margin_minutes: int = 0
    min_notice_hours: int = 2
    max_advance_days: int = 30

    def __post_init__(self):
        if self.slot_step_minutes not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}")
        if self.travel_buffer_minutes < 0:
            raise ValueError(f"travel_buffer_minutes must be >= 0, got {self.travel_buffer_minutes}")
        if self.tight_margin_minutes < 0:
            raise ValueError(f"tight_margin_minutes must be >= 0, got {self.tight_margin_minutes}")
        if self.min_notice_hours < 0 or self.max_advance_days < 0:
            raise ValueError("min_notice_hours and max_advance_days must be >= 0")


@dataclass(frozen=True)
class TrafficConfig:
    """
    Peak-hour handling for travel times.

    peak_hours are local [start_hour, end_hour) windows.
    """
    peak_hours: tuple[tuple[int, int], ...] = ((7, 9), (16, 18))
    peak_multiplier: float = 1.3
    peak_ttl_minutes: int = 240  # 4 hours
    off_peak_ttl_minutes: int = 1440  # 24 hours

    def __post_init__(self):
        if self.peak_multiplier < 1.0:
            raise ValueError(f"peak_multiplier must be >= 1.0, got {self.peak_multiplier}")
        for start, end in self.peak_hours:
            if not (0 <= start < end <= 24):
                raise ValueError(f"invalid peak window {start}-{end}")

    def is_peak_hour(self, hour: int) -> bool:
        return any(start <= hour < end for start, end in self.peak_hours)

    def adjust(self, minutes: int, hour: int) -> int:
        """Apply the peak multiplier (rounded up) when hour is a peak hour."""
        if not self.is_peak_hour(hour):
            return minutes
        return ceil(minutes * self.peak_multiplier)

    def ttl_minutes(self, hour: int) -> int:
        return self.peak_ttl_minutes if self.is_peak_hour(hour) else self.off_peak_ttl_minutes


@lru_cache
def get_availability_config() -> AvailabilityConfig:
    return AvailabilityConfig()


@lru_cache
def get_traffic_config() -> TrafficConfig:
    return TrafficConfig()
