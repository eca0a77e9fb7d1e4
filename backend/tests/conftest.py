"""Shared test fixtures and helpers."""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import fakeredis
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from offleash.models.generated import (
    Base,
    Blocks,
    Bookings,
    Locations,
    Organizations,
    Services,
    Users,
    WorkingHours,
)
from offleash.services.clock import FixedClock
from offleash.services.routing import RouteEstimate, RoutingError
from offleash.services.timeutils import local_to_utc, to_naive_utc

DENVER = "America/Denver"

# Monday 2026-10-19, 08:00 in Denver (MDT, UTC-6)
NOW = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)

# Monday a week later, still MDT
NEXT_MONDAY = date(2026, 10, 26)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_sqlite_fk(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def clock():
    return FixedClock(NOW)


class StubRouting:
    """Routing provider returning a fixed duration, or failing."""

    def __init__(self, minutes: int = 10, meters: int = 2500, fail: bool = False):
        self.minutes = minutes
        self.meters = meters
        self.fail = fail
        self.calls = []

    def travel_time(self, origin, destination):
        self.calls.append((origin, destination))
        if self.fail:
            raise RoutingError("provider down")
        return RouteEstimate(duration_minutes=self.minutes, distance_meters=self.meters)


@pytest.fixture
def routing():
    return StubRouting()


# ── Seed helpers ─────────────────────────────────────────────────────────────


def make_organization(db, name="Happy Paws", settings="{}"):
    org = Organizations(name=name, settings=settings)
    db.add(org)
    db.commit()
    return org


def make_user(db, org, first_name, role="customer", tz=DENVER, is_active=1):
    user = Users(
        organization_id=org.id,
        first_name=first_name,
        last_name="Tester",
        role=role,
        timezone=tz,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


def make_location(db, org, owner, name="Home", lat=39.7392, lng=-104.9903):
    location = Locations(
        organization_id=org.id,
        user_id=owner.id,
        name=name,
        address=f"{name} street 1",
        city="Denver",
        latitude=lat,
        longitude=lng,
    )
    db.add(location)
    db.commit()
    return location


def make_service(db, org, duration=30, price=2500, name="30 min walk"):
    service = Services(
        organization_id=org.id,
        name=name,
        duration_minutes=duration,
        base_price_cents=price,
    )
    db.add(service)
    db.commit()
    return service


def set_working_hours(db, walker, dow, start="09:00", end="17:00", is_active=1):
    row = WorkingHours(
        walker_id=walker.id,
        day_of_week=dow,
        start_time=start,
        end_time=end,
        is_active=is_active,
    )
    db.add(row)
    db.commit()
    return row


def make_booking(db, walker, customer, service, location, start, end, status="confirmed"):
    """start / end are aware datetimes."""
    booking = Bookings(
        organization_id=walker.organization_id,
        customer_id=customer.id,
        walker_id=walker.id,
        service_id=service.id,
        location_id=location.id,
        status=status,
        scheduled_start=to_naive_utc(start),
        scheduled_end=to_naive_utc(end),
        price_cents=service.base_price_cents,
    )
    db.add(booking)
    db.commit()
    return booking


def make_block(db, walker, start, end, is_blocking=1, reason="Vet appointment"):
    block = Blocks(
        walker_id=walker.id,
        reason=reason,
        start_time=to_naive_utc(start),
        end_time=to_naive_utc(end),
        is_blocking=is_blocking,
    )
    db.add(block)
    db.commit()
    return block


def local(d: date, hhmm: str, tz: str = DENVER) -> datetime:
    """Wall-clock time in tz → aware UTC."""
    return local_to_utc(d, hhmm, tz)


@pytest.fixture
def world(db):
    """
    One organization with a Denver walker working Mon-Fri 09:00-17:00,
    two customers, two locations and a 30 minute service.
    """
    org = make_organization(db)
    walker = make_user(db, org, "Walt", role="walker")
    customer = make_user(db, org, "Cora")
    other_customer = make_user(db, org, "Otto")
    home = make_location(db, org, customer, name="Home")
    park = make_location(db, org, other_customer, name="Park", lat=39.7508, lng=-104.9966)
    service = make_service(db, org)
    for dow in range(1, 6):
        set_working_hours(db, walker, dow)
    return SimpleNamespace(
        org=org,
        walker=walker,
        customer=customer,
        other_customer=other_customer,
        home=home,
        park=park,
        service=service,
    )
