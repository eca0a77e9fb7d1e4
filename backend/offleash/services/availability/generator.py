# backend/offleash/services/availability/generator.py
"""
Slot generator.

Turns open intervals into quantized start times and annotates each one with
the walker's preceding visit: gap, travel time, tightness and confidence.

Travel adequacy is advisory: a tight slot is flagged, never dropped.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from math import ceil
from typing import Callable, Iterable

from ..timeutils import as_utc, minutes_between, to_local
from .config import AvailabilityConfig, get_availability_config
from .intervals import Interval
from .travel_cache import TravelEstimate

# Share of the idle gap shown as a travel guess when the provider is down
ESTIMATED_TRAVEL_SHARE = 0.7


@dataclass(frozen=True)
class ScheduledVisit:
    """A booking already on the walker's calendar."""
    booking_id: int
    location_id: int
    start: datetime
    end: datetime


@dataclass
class AvailableSlot:
    start: datetime
    end: datetime
    walker_id: int
    travel_minutes: int | None = None
    travel_from_location_id: int | None = None
    travel_from_booking_id: int | None = None
    gap_minutes: int | None = None
    is_tight: bool = False
    warning: str | None = None
    confidence: str = "high"  # high / medium / low
    estimated_travel_minutes: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


# (origin_location_id, local slot start) → estimate
TravelLookup = Callable[[int, datetime], TravelEstimate]


def quantized_starts(
    interval: Interval,
    duration_minutes: int,
    step_minutes: int,
    tz_name: str | None,
) -> list[datetime]:
    """
    Start instants inside interval on the local step grid.

    The first candidate is interval.start rounded up to the next multiple of
    step_minutes after local midnight; start + duration must fit.
    """
    local = to_local(interval.start, tz_name)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    offset = ceil((local - midnight).total_seconds() / 60)
    aligned = ceil(offset / step_minutes) * step_minutes
    candidate = as_utc(midnight + timedelta(minutes=aligned))

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    starts = []
    while candidate + duration <= interval.end:
        starts.append(candidate)
        candidate += step
    return starts


def classify(
    gap_minutes: int,
    travel_minutes: int | None,
    travel_buffer_minutes: int,
    tight_margin_minutes: int = 0,
) -> tuple[bool, str | None]:
    """(is_tight, warning) for the gap after the preceding visit."""
    too_close = 0 <= gap_minutes < travel_buffer_minutes
    short_for_travel = travel_minutes is not None and gap_minutes < travel_minutes + tight_margin_minutes
    if not (too_close or short_for_travel):
        return False, None
    if short_for_travel and gap_minutes < travel_minutes:
        return True, (
            f"Tight schedule: only {gap_minutes} min between appointments, "
            f"travel takes about {travel_minutes} min"
        )
    return True, f"Tight schedule: only {gap_minutes} min between appointments"


def generate_slots(
    open_intervals: Iterable[Interval],
    service_duration_minutes: int,
    travel_buffer_minutes: int,
    schedule: Iterable[ScheduledVisit],
    walker_id: int,
    tz_name: str | None = None,
    travel_lookup: TravelLookup | None = None,
    config: AvailabilityConfig | None = None,
) -> list[AvailableSlot]:
    """
    Bookable slots sorted by start.

    Args:
        open_intervals: Output of the resolver (UTC)
        schedule: Walker's visits around the day, used for travel-from
        travel_lookup: Travel from a location to the target location; None
            means travel is never known
    """
    config = config or get_availability_config()
    if service_duration_minutes <= 0:
        raise ValueError(f"service duration must be positive, got {service_duration_minutes}")

    visits = sorted(schedule, key=lambda v: as_utc(v.end))
    memo: dict[tuple[int, int], TravelEstimate] = {}

    def travel_from(location_id: int, at_local: datetime) -> TravelEstimate | None:
        if travel_lookup is None:
            return None
        key = (location_id, at_local.hour)
        if key not in memo:
            memo[key] = travel_lookup(location_id, at_local)
        return memo[key]

    slots: list[AvailableSlot] = []
    for interval in sorted(open_intervals):
        for start in quantized_starts(interval, service_duration_minutes, config.slot_step_minutes, tz_name):
            slot = AvailableSlot(
                start=start,
                end=start + timedelta(minutes=service_duration_minutes),
                walker_id=walker_id,
            )
            previous = _preceding_visit(visits, start)
            if previous is not None:
                _annotate(slot, previous, travel_from(previous.location_id, to_local(start, tz_name)),
                          travel_buffer_minutes, config)
            slots.append(slot)

    slots.sort(key=lambda s: s.start)
    return slots


# ── Helpers ──────────────────────────────────────────────────────────────────


def _preceding_visit(visits: list[ScheduledVisit], slot_start: datetime) -> ScheduledVisit | None:
    previous = None
    for visit in visits:
        if as_utc(visit.end) <= slot_start:
            previous = visit
        else:
            break
    return previous


def _annotate(
    slot: AvailableSlot,
    previous: ScheduledVisit,
    estimate: TravelEstimate | None,
    travel_buffer_minutes: int,
    config: AvailabilityConfig,
) -> None:
    gap = minutes_between(previous.end, slot.start)
    travel = estimate.minutes if estimate is not None else None

    slot.gap_minutes = gap
    slot.travel_from_booking_id = previous.booking_id
    slot.travel_from_location_id = previous.location_id
    slot.travel_minutes = travel
    slot.is_tight, slot.warning = classify(gap, travel, travel_buffer_minutes, config.tight_margin_minutes)

    if travel is None:
        slot.confidence = "low"
        slot.estimated_travel_minutes = round(ESTIMATED_TRAVEL_SHARE * gap)
    elif slot.is_tight:
        slot.confidence = "medium"
    else:
        slot.confidence = "high"
