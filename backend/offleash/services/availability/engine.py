# backend/offleash/services/availability/engine.py
"""
Availability for one walker or every eligible walker.

Takes into account:
- Walker working hours, bookings and blocks (resolver)
- Travel from the preceding visit (travel cache / routing provider)
- Organization travel buffer override
- Minimum booking notice and maximum advance window
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from ..clock import Clock, SystemClock, today
from ..errors import NotFoundError, RecipeValidationError
from ..timeutils import DEFAULT_TIMEZONE, as_utc
from .config import AvailabilityConfig, get_availability_config
from .generator import AvailableSlot, ScheduledVisit, generate_slots
from .resolver import day_schedule, open_intervals
from .travel_cache import TravelEstimate, TravelTimeService

logger = logging.getLogger(__name__)


@dataclass
class WalkerSlots:
    walker_id: int
    walker_name: str
    date: date
    service_id: int
    travel_buffer_minutes: int
    slots: list[AvailableSlot] = field(default_factory=list)


def travel_buffer_for(organization, config: AvailabilityConfig) -> int:
    """Organization settings override, else the configured default."""
    raw = getattr(organization, "settings", None) if organization is not None else None
    if raw:
        try:
            value = json.loads(raw).get("travel_buffer_minutes")
        except (ValueError, AttributeError):
            logger.warning(f"Organization {organization.id} has malformed settings, using default buffer")
            value = None
        if isinstance(value, int) and value >= 0:
            return value
    return config.travel_buffer_minutes


def find_walker_slots(
    db: Session,
    walker,
    service,
    location,
    target_date: date,
    travel: TravelTimeService | None = None,
    clock: Clock | None = None,
    config: AvailabilityConfig | None = None,
    travel_buffer_minutes: int | None = None,
) -> WalkerSlots:
    """Slots for one walker (ORM rows for walker/service/location)."""
    config = config or get_availability_config()
    clock = clock or SystemClock()
    if travel_buffer_minutes is None:
        travel_buffer_minutes = travel_buffer_for(_get_organization(db, walker.organization_id), config)

    intervals = open_intervals(db, walker.id, target_date)
    result = WalkerSlots(
        walker_id=walker.id,
        walker_name=walker.full_name,
        date=target_date,
        service_id=service.id,
        travel_buffer_minutes=travel_buffer_minutes,
    )
    if not intervals:
        return result

    schedule = [
        ScheduledVisit(b.id, b.location_id, as_utc(b.scheduled_start), as_utc(b.scheduled_end))
        for b in day_schedule(db, walker.id, target_date, walker.timezone)
    ]

    locations: dict[int, object] = {location.id: location}

    def lookup(origin_id: int, at_local: datetime) -> TravelEstimate:
        if origin_id not in locations:
            locations[origin_id] = _get_location(db, origin_id)
        origin = locations[origin_id]
        if origin is None or travel is None:
            return TravelEstimate(minutes=None, distance_meters=None, source="unavailable")
        return travel.lookup(origin, location, at_local)

    slots = generate_slots(
        intervals,
        service.duration_minutes,
        travel_buffer_minutes,
        schedule,
        walker_id=walker.id,
        tz_name=walker.timezone,
        travel_lookup=lookup,
        config=config,
    )

    earliest = clock.now() + timedelta(hours=config.min_notice_hours)
    result.slots = [s for s in slots if s.start >= earliest]
    return result


def find_available_slots(
    db: Session,
    service_id: int,
    location_id: int,
    target_date: date,
    walker_id: int | None = None,
    travel: TravelTimeService | None = None,
    clock: Clock | None = None,
    config: AvailabilityConfig | None = None,
) -> list[WalkerSlots]:
    """
    One slot list per walker.

    walker_id given → that walker only; otherwise every active walker of the
    location's organization, in id order.
    """
    config = config or get_availability_config()
    clock = clock or SystemClock()

    service = _get_service(db, service_id)
    if not service:
        raise NotFoundError(f"service {service_id} not found")
    location = _get_location(db, location_id)
    if not location:
        raise NotFoundError(f"location {location_id} not found")

    if walker_id is not None:
        walker = _get_walker(db, walker_id)
        if not walker:
            raise NotFoundError(f"walker {walker_id} not found")
        walkers = [walker]
    else:
        walkers = _get_eligible_walkers(db, location.organization_id)

    tz_name = walkers[0].timezone if walkers else DEFAULT_TIMEZONE
    first_day = today(clock, tz_name)
    last_day = first_day + timedelta(days=config.max_advance_days)
    if not (first_day <= target_date <= last_day):
        raise RecipeValidationError(
            f"date must be between {first_day.isoformat()} and {last_day.isoformat()}"
        )

    buffer = travel_buffer_for(_get_organization(db, location.organization_id), config)
    return [
        find_walker_slots(
            db, walker, service, location, target_date,
            travel=travel, clock=clock, config=config, travel_buffer_minutes=buffer,
        )
        for walker in walkers
    ]


# ── DB helpers ───────────────────────────────────────────────────────────────


def _get_service(db: Session, service_id: int):
    from ...models.generated import Services
    return db.query(Services).filter(
        Services.id == service_id,
        Services.is_active == 1,
    ).first()


def _get_location(db: Session, location_id: int):
    from ...models.generated import Locations
    return db.query(Locations).filter(Locations.id == location_id).first()


def _get_organization(db: Session, organization_id: int):
    from ...models.generated import Organizations
    return db.query(Organizations).filter(Organizations.id == organization_id).first()


def _get_walker(db: Session, walker_id: int):
    from ...models.generated import Users
    return db.query(Users).filter(
        Users.id == walker_id,
        Users.role == "walker",
        Users.is_active == 1,
    ).first()


def _get_eligible_walkers(db: Session, organization_id: int) -> list:
    from ...models.generated import Users
    return db.query(Users).filter(
        Users.organization_id == organization_id,
        Users.role == "walker",
        Users.is_active == 1,
    ).order_by(Users.id).all()
