# backend/offleash/services/recurring/materializer.py
"""
Recurring series materializer.

A recipe (customer series or calendar recurring block) is expanded into
dates, and every date is submitted through the single-creation path one at a
time. Conflicts are collected, never fatal:

    requested → expanding → submitting → completed | partially_completed

Invariant: created + len(conflicts) == total_planned.

Customer series are idempotent on X-Idempotency-Key: a stored report is
returned unchanged; a series left without a report (interrupted run) is
resumed and its existing occurrences count as created.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..bookings import create_block, create_booking, find_booking_conflict
from ..clock import Clock, SystemClock, today
from ..errors import BookingConflict, NotFoundError, RecipeValidationError
from ..timeutils import (
    DEFAULT_TIMEZONE,
    day_of_week,
    get_zone,
    local_to_utc,
    parse_hhmm,
    time_str_to_minutes,
    to_naive_utc,
)
from .dates import FREQUENCIES, MAX_OCCURRENCES, block_dates, series_dates
from .rules import Fixed, Indefinite, WeeklyRule

logger = logging.getLogger(__name__)

PREVIEW_DATES = 5
CANCEL_SCOPES = ("all_future", "entire_series")


class SeriesState(str, Enum):
    REQUESTED = "requested"
    EXPANDING = "expanding"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"


@dataclass(frozen=True)
class SeriesRecipe:
    customer_id: int
    walker_id: int
    service_id: int
    location_id: int
    frequency: str
    start_date: date
    time_of_day: str
    day_of_week: int | None = None  # defaults to start_date's weekday
    end_date: date | None = None
    total_occurrences: int | None = None
    timezone: str = DEFAULT_TIMEZONE
    notes: str | None = None


@dataclass(frozen=True)
class BlockRecipe:
    walker_id: int
    start_time: str
    end_time: str
    days: tuple[int, ...]
    weeks_ahead: int = 52
    indefinite: bool = False
    reason: str = "Blocked"
    is_blocking: bool = True

    @property
    def rule(self) -> WeeklyRule:
        horizon = Indefinite() if self.indefinite else Fixed(self.weeks_ahead)
        return WeeklyRule(days=tuple(self.days), horizon=horizon)


@dataclass(frozen=True)
class Occurrence:
    date: date
    occurrence_number: int
    record_id: int


@dataclass(frozen=True)
class OccurrenceConflict:
    date: date
    reason: str


Attempt = Occurrence | OccurrenceConflict


@dataclass
class MaterializationReport:
    total_planned: int
    created: int = 0
    conflicts: list[OccurrenceConflict] = field(default_factory=list)
    status: SeriesState = SeriesState.REQUESTED
    series_id: int | None = None
    series_key: str | None = None
    indefinite: bool = False
    kind: str = "bookings"  # bookings / blocks
    preview_dates: list[date] = field(default_factory=list)
    replayed: bool = False

    @classmethod
    def from_attempts(cls, attempts: list[Attempt], **kwargs) -> "MaterializationReport":
        conflicts = [a for a in attempts if isinstance(a, OccurrenceConflict)]
        status = SeriesState.PARTIALLY_COMPLETED if conflicts else SeriesState.COMPLETED
        return cls(
            total_planned=len(attempts),
            created=len(attempts) - len(conflicts),
            conflicts=conflicts,
            status=status,
            **kwargs,
        )

    @property
    def success(self) -> bool:
        return self.status not in (SeriesState.EXPANDING, SeriesState.SUBMITTING)

    def to_dict(self) -> dict:
        created_key = "blocksCreated" if self.kind == "blocks" else "bookingsCreated"
        data = {
            "success": self.success,
            "seriesId": self.series_id,
            created_key: self.created,
            "totalPlanned": self.total_planned,
            "conflicts": [{"date": c.date.isoformat(), "reason": c.reason} for c in self.conflicts],
            "indefinite": self.indefinite,
            "status": self.status.value,
            "previewDates": [d.isoformat() for d in self.preview_dates],
        }
        if self.series_key is not None:
            data["seriesKey"] = self.series_key
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MaterializationReport":
        kind = "blocks" if "blocksCreated" in data else "bookings"
        return cls(
            total_planned=data["totalPlanned"],
            created=data["blocksCreated" if kind == "blocks" else "bookingsCreated"],
            conflicts=[
                OccurrenceConflict(date.fromisoformat(c["date"]), c["reason"])
                for c in data.get("conflicts", [])
            ],
            status=SeriesState(data["status"]),
            series_id=data.get("seriesId"),
            series_key=data.get("seriesKey"),
            indefinite=data.get("indefinite", False),
            kind=kind,
            preview_dates=[date.fromisoformat(d) for d in data.get("previewDates", [])],
        )


# ── Validation ───────────────────────────────────────────────────────────────


def validate_series_recipe(recipe: SeriesRecipe) -> None:
    """Structural checks. Raises RecipeValidationError before any write."""
    if recipe.frequency not in FREQUENCIES:
        raise RecipeValidationError("Invalid frequency. Must be weekly, bi_weekly, or monthly")
    if not recipe.time_of_day:
        raise RecipeValidationError("time_of_day is required")
    try:
        parse_hhmm(recipe.time_of_day)
    except ValueError:
        raise RecipeValidationError("Invalid time format. Use HH:MM")
    try:
        get_zone(recipe.timezone)
    except ValueError:
        raise RecipeValidationError(f"Unknown timezone {recipe.timezone!r}")

    has_end_date = recipe.end_date is not None
    has_count = recipe.total_occurrences is not None
    if has_end_date == has_count:
        raise RecipeValidationError("Exactly one of end_date or total_occurrences is required")
    if has_count and not (1 <= recipe.total_occurrences <= MAX_OCCURRENCES):
        raise RecipeValidationError(f"Occurrences must be between 1 and {MAX_OCCURRENCES}")
    if has_end_date and recipe.end_date <= recipe.start_date:
        raise RecipeValidationError("End date must be after start date")

    if recipe.day_of_week is not None and not (0 <= recipe.day_of_week <= 6):
        raise RecipeValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")


def validate_block_recipe(recipe: BlockRecipe) -> WeeklyRule:
    if not recipe.start_time or not recipe.end_time:
        raise RecipeValidationError("Start and end time are required")
    try:
        start, end = time_str_to_minutes(recipe.start_time), time_str_to_minutes(recipe.end_time)
    except ValueError:
        raise RecipeValidationError("Invalid time format. Use HH:MM")
    if end <= start:
        raise RecipeValidationError("End time must be after start time")
    return recipe.rule


# ── Customer series ──────────────────────────────────────────────────────────


def materialize_series(
    db: Session,
    recipe: SeriesRecipe,
    idempotency_key: str | None = None,
    clock: Clock | None = None,
    preview: bool = False,
) -> MaterializationReport:
    """
    Expand a customer series into bookings.

    Raises:
        RecipeValidationError: invalid recipe (nothing written)
        NotFoundError: unknown walker / service / location
    """
    clock = clock or SystemClock()

    series = _get_series_by_key(db, idempotency_key) if idempotency_key else None
    if series is not None and series.report:
        logger.info(f"Idempotent replay of series {series.id} (key={idempotency_key})")
        report = MaterializationReport.from_dict(json.loads(series.report))
        report.replayed = True
        return report

    if series is not None:
        recipe = _recipe_from_series(series)
        validate_series_recipe(recipe)
        logger.info(f"Resuming interrupted series {series.id} (key={idempotency_key})")
    else:
        validate_series_recipe(recipe)
        if recipe.start_date < today(clock, recipe.timezone):
            raise RecipeValidationError("Start date cannot be in the past")

    service = _require_entities(db, recipe)
    dow = recipe.day_of_week if recipe.day_of_week is not None else day_of_week(recipe.start_date)
    dates = series_dates(recipe.start_date, recipe.frequency, dow, recipe.end_date, recipe.total_occurrences)
    if not dates:
        raise RecipeValidationError("Recurrence produces no dates")

    if preview:
        return _preview_series(db, recipe, dates)

    if series is None:
        series = _create_series(db, recipe, dow, service, idempotency_key)
    _set_state(db, series, SeriesState.EXPANDING)

    existing = {
        b.occurrence_number: b
        for b in series.bookings
        if b.status != "cancelled" and b.occurrence_number is not None
    }

    _set_state(db, series, SeriesState.SUBMITTING)
    attempts: list[Attempt] = []
    for number, occurrence_date in enumerate(dates, start=1):
        if number in existing:
            attempts.append(Occurrence(occurrence_date, number, existing[number].id))
            continue
        attempts.append(_submit_booking(db, series, recipe, occurrence_date, number))

    report = MaterializationReport.from_attempts(
        attempts,
        series_id=series.id,
        preview_dates=dates[:PREVIEW_DATES],
    )
    series.status = report.status.value
    series.report = json.dumps(report.to_dict())
    series.updated_at = to_naive_utc(clock.now())
    db.commit()

    if report.conflicts:
        logger.warning(
            f"Series {series.id}: {report.created}/{report.total_planned} created, "
            f"{len(report.conflicts)} conflicts"
        )
    else:
        logger.info(f"Series {series.id}: {report.created}/{report.total_planned} created")
    return report


def _submit_booking(db: Session, series, recipe: SeriesRecipe, occurrence_date: date, number: int) -> Attempt:
    start = local_to_utc(occurrence_date, recipe.time_of_day, recipe.timezone)
    try:
        booking = create_booking(
            db,
            customer_id=recipe.customer_id,
            walker_id=recipe.walker_id,
            service_id=recipe.service_id,
            location_id=recipe.location_id,
            start=start,
            price_cents=series.price_cents_per_booking,
            notes=recipe.notes,
            recurring_series_id=series.id,
            occurrence_number=number,
        )
    except BookingConflict as e:
        logger.warning(f"Series {series.id} occurrence {number} on {occurrence_date}: {e.reason}")
        return OccurrenceConflict(occurrence_date, e.reason)
    return Occurrence(occurrence_date, number, booking.id)


def _preview_series(db: Session, recipe: SeriesRecipe, dates: list[date]) -> MaterializationReport:
    """Plan + conflict check, nothing written."""
    service = _get_service(db, recipe.service_id)
    conflicts = []
    for occurrence_date in dates:
        start = local_to_utc(occurrence_date, recipe.time_of_day, recipe.timezone)
        end = start + timedelta(minutes=service.duration_minutes)
        reason = find_booking_conflict(
            db, recipe.walker_id, start, end, recipe.customer_id, recipe.service_id,
        )
        if reason:
            conflicts.append(OccurrenceConflict(occurrence_date, reason))

    logger.info(f"Preview: {len(dates)} planned, {len(conflicts)} conflicts")
    return MaterializationReport(
        total_planned=len(dates),
        created=0,
        conflicts=conflicts,
        status=SeriesState.REQUESTED,
        preview_dates=dates[:PREVIEW_DATES],
    )


def _create_series(db: Session, recipe: SeriesRecipe, dow: int, service, idempotency_key: str | None):
    from ...models.generated import RecurringBookingSeries

    walker = _get_walker(db, recipe.walker_id)
    series = RecurringBookingSeries(
        organization_id=walker.organization_id,
        customer_id=recipe.customer_id,
        walker_id=recipe.walker_id,
        service_id=recipe.service_id,
        location_id=recipe.location_id,
        frequency=recipe.frequency,
        day_of_week=dow,
        time_of_day=recipe.time_of_day,
        timezone=recipe.timezone,
        start_date=recipe.start_date,
        end_date=recipe.end_date,
        total_occurrences=recipe.total_occurrences,
        status=SeriesState.REQUESTED.value,
        price_cents_per_booking=service.base_price_cents,
        default_notes=recipe.notes,
        idempotency_key=idempotency_key,
    )
    db.add(series)
    try:
        db.commit()
    except IntegrityError:
        # Another request with the same key got there first
        db.rollback()
        raise BookingConflict("a series with this idempotency key is already being created")
    db.refresh(series)
    logger.info(f"Created series {series.id} for customer {recipe.customer_id} (key={idempotency_key})")
    return series


def _set_state(db: Session, series, state: SeriesState) -> None:
    series.status = state.value
    db.commit()


def _recipe_from_series(series) -> SeriesRecipe:
    return SeriesRecipe(
        customer_id=series.customer_id,
        walker_id=series.walker_id,
        service_id=series.service_id,
        location_id=series.location_id,
        frequency=series.frequency,
        start_date=series.start_date,
        time_of_day=series.time_of_day,
        day_of_week=series.day_of_week,
        end_date=series.end_date,
        total_occurrences=series.total_occurrences,
        timezone=series.timezone,
        notes=series.default_notes,
    )


def _require_entities(db: Session, recipe: SeriesRecipe):
    if not _get_walker(db, recipe.walker_id):
        raise NotFoundError(f"walker {recipe.walker_id} not found")
    service = _get_service(db, recipe.service_id)
    if not service:
        raise NotFoundError(f"service {recipe.service_id} not found")
    if not _get_location(db, recipe.location_id):
        raise NotFoundError(f"location {recipe.location_id} not found")
    return service


# ── Calendar recurring blocks ────────────────────────────────────────────────


def materialize_recurring_blocks(
    db: Session,
    recipe: BlockRecipe,
    clock: Clock | None = None,
) -> MaterializationReport:
    """
    Expand a weekly block rule into individual blocks.

    Raises:
        RecipeValidationError: invalid times / days / weeks
        NotFoundError: unknown walker
    """
    clock = clock or SystemClock()
    rule = validate_block_recipe(recipe)

    walker = _get_walker(db, recipe.walker_id)
    if not walker:
        raise NotFoundError(f"walker {recipe.walker_id} not found")

    dates = block_dates(rule, today(clock, walker.timezone))
    series_key = uuid.uuid4().hex
    rule_str = str(rule)

    attempts: list[Attempt] = []
    for number, block_date in enumerate(dates, start=1):
        start = local_to_utc(block_date, recipe.start_time, walker.timezone)
        end = local_to_utc(block_date, recipe.end_time, walker.timezone)
        try:
            block = create_block(
                db,
                walker_id=recipe.walker_id,
                reason=recipe.reason,
                start=start,
                end=end,
                is_blocking=recipe.is_blocking,
                recurrence_rule=rule_str,
                series_key=series_key,
            )
        except BookingConflict as e:
            logger.warning(f"Recurring block {rule_str} on {block_date}: {e.reason}")
            attempts.append(OccurrenceConflict(block_date, e.reason))
            continue
        attempts.append(Occurrence(block_date, number, block.id))

    report = MaterializationReport.from_attempts(
        attempts,
        series_key=series_key,
        indefinite=rule.indefinite,
        kind="blocks",
        preview_dates=dates[:PREVIEW_DATES],
    )
    logger.info(
        f"Recurring blocks {rule_str} for walker {recipe.walker_id}: "
        f"{report.created}/{report.total_planned} created"
    )
    return report


# ── Series management ────────────────────────────────────────────────────────


def cancel_series(db: Session, series_id: int, scope: str, clock: Clock | None = None) -> tuple[int, bool]:
    """
    Cancel a series' pending/confirmed bookings and deactivate it.

    scope:
        all_future     bookings starting after now
        entire_series  every pending/confirmed booking

    Returns:
        (bookings_cancelled, series_deactivated)
    """
    if scope not in CANCEL_SCOPES:
        raise RecipeValidationError("scope must be all_future or entire_series")
    clock = clock or SystemClock()

    series = get_series(db, series_id)
    from ...models.generated import Bookings

    query = db.query(Bookings).filter(
        Bookings.recurring_series_id == series.id,
        Bookings.status.in_(("pending", "confirmed")),
    )
    if scope == "all_future":
        query = query.filter(Bookings.scheduled_start > to_naive_utc(clock.now()))

    cancelled = 0
    for booking in query.all():
        booking.status = "cancelled"
        booking.cancel_reason = "Recurring series cancelled"
        cancelled += 1

    series.is_active = 0
    series.updated_at = to_naive_utc(clock.now())
    db.commit()
    logger.info(f"Series {series.id} cancelled ({scope}): {cancelled} bookings")
    return cancelled, True


def get_series(db: Session, series_id: int):
    from ...models.generated import RecurringBookingSeries
    series = db.get(RecurringBookingSeries, series_id)
    if not series:
        raise NotFoundError(f"series {series_id} not found")
    return series


def list_customer_series(db: Session, customer_id: int) -> list:
    from ...models.generated import RecurringBookingSeries
    return db.query(RecurringBookingSeries).filter(
        RecurringBookingSeries.customer_id == customer_id,
    ).order_by(RecurringBookingSeries.created_at.desc(), RecurringBookingSeries.id.desc()).all()


def next_occurrence(series, now: datetime):
    """First non-cancelled booking of the series starting after now."""
    cutoff = to_naive_utc(now)
    for booking in series.bookings:
        if booking.status != "cancelled" and booking.scheduled_start > cutoff:
            return booking
    return None


# ── DB helpers ───────────────────────────────────────────────────────────────


def _get_series_by_key(db: Session, key: str):
    from ...models.generated import RecurringBookingSeries
    return db.query(RecurringBookingSeries).filter(
        RecurringBookingSeries.idempotency_key == key,
    ).first()


def _get_walker(db: Session, walker_id: int):
    from ...models.generated import Users
    return db.query(Users).filter(
        Users.id == walker_id,
        Users.role == "walker",
    ).first()


def _get_service(db: Session, service_id: int):
    from ...models.generated import Services
    return db.query(Services).filter(Services.id == service_id).first()


def _get_location(db: Session, location_id: int):
    from ...models.generated import Locations
    return db.query(Locations).filter(Locations.id == location_id).first()
