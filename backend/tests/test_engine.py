import pytest

from conftest import (
    NEXT_MONDAY,
    local,
    make_booking,
    make_organization,
    make_user,
    set_working_hours,
)
from offleash.services.availability import (
    AvailabilityConfig,
    TrafficConfig,
    TravelTimeRedisStore,
    TravelTimeService,
    find_available_slots,
)
from offleash.services.clock import FixedClock
from offleash.services.errors import NotFoundError, RecipeValidationError

FLAT_TRAFFIC = TrafficConfig(peak_multiplier=1.0)


@pytest.fixture
def travel(redis, routing, clock):
    return TravelTimeService(TravelTimeRedisStore(redis, clock), routing, clock, traffic=FLAT_TRAFFIC)


def test_slots_for_one_walker(db, world, travel, clock):
    make_booking(db, world.walker, world.other_customer, world.service, world.park,
                 local(NEXT_MONDAY, "10:00"), local(NEXT_MONDAY, "10:30"))

    [result] = find_available_slots(
        db, world.service.id, world.home.id, NEXT_MONDAY,
        walker_id=world.walker.id, travel=travel, clock=clock,
    )

    starts = [s.start for s in result.slots]
    assert starts[:4] == [
        local(NEXT_MONDAY, "09:00"),
        local(NEXT_MONDAY, "09:15"),
        local(NEXT_MONDAY, "09:30"),
        local(NEXT_MONDAY, "10:30"),
    ]
    assert starts[-1] == local(NEXT_MONDAY, "16:30")
    assert len(starts) == 28
    assert result.walker_name == "Walt Tester"
    assert result.travel_buffer_minutes == 15

    after = result.slots[3]
    assert after.travel_from_location_id == world.park.id
    assert after.travel_minutes == 10
    assert after.is_tight
    assert after.confidence == "medium"


def test_no_double_booking(db, world, travel, clock):
    make_booking(db, world.walker, world.other_customer, world.service, world.park,
                 local(NEXT_MONDAY, "13:00"), local(NEXT_MONDAY, "14:00"))
    [result] = find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                                    travel=travel, clock=clock)
    busy_start, busy_end = local(NEXT_MONDAY, "13:00"), local(NEXT_MONDAY, "14:00")
    for slot in result.slots:
        assert slot.end <= busy_start or slot.start >= busy_end


def test_same_location_needs_no_travel(db, world, travel, routing, clock):
    make_booking(db, world.walker, world.customer, world.service, world.home,
                 local(NEXT_MONDAY, "10:00"), local(NEXT_MONDAY, "10:30"))
    [result] = find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                                    travel=travel, clock=clock)
    assert result.slots[3].travel_minutes == 0
    assert routing.calls == []


def test_provider_failure_gives_low_confidence(db, world, redis, routing, clock):
    routing.fail = True
    travel = TravelTimeService(TravelTimeRedisStore(redis, clock), routing, clock)
    make_booking(db, world.walker, world.other_customer, world.service, world.park,
                 local(NEXT_MONDAY, "10:00"), local(NEXT_MONDAY, "10:30"))

    [result] = find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                                    travel=travel, clock=clock)
    after = [s for s in result.slots if s.travel_from_booking_id is not None]
    assert after
    assert all(s.confidence == "low" and s.travel_minutes is None for s in after)


def test_all_eligible_walkers(db, world, travel, clock):
    second = make_user(db, world.org, "Wendy", role="walker")
    set_working_hours(db, second, 1, "12:00", "14:00")
    make_user(db, world.org, "Idle", role="walker", is_active=0)
    stranger_org = make_organization(db, name="Elsewhere")
    make_user(db, stranger_org, "Stranger", role="walker")

    results = find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                                   travel=travel, clock=clock)
    assert [r.walker_id for r in results] == [world.walker.id, second.id]
    assert len(results[1].slots) == 7  # 12:00 .. 13:30


def test_minimum_notice_hides_early_slots(db, world, travel):
    # Monday 2026-10-26 09:30 Denver
    clock = FixedClock(local(NEXT_MONDAY, "09:30"))
    [result] = find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                                    travel=travel, clock=clock)
    assert result.slots[0].start == local(NEXT_MONDAY, "11:30")


def test_organization_buffer_override(db, world, travel, clock):
    world.org.settings = '{"travel_buffer_minutes": 45}'
    db.commit()
    make_booking(db, world.walker, world.other_customer, world.service, world.park,
                 local(NEXT_MONDAY, "10:00"), local(NEXT_MONDAY, "10:30"))

    [result] = find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                                    travel=travel, clock=clock)
    assert result.travel_buffer_minutes == 45
    by_start = {s.start: s for s in result.slots}
    assert by_start[local(NEXT_MONDAY, "11:00")].is_tight
    assert not by_start[local(NEXT_MONDAY, "11:15")].is_tight


def test_date_outside_booking_window(db, world, travel, clock):
    with pytest.raises(RecipeValidationError):
        find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY.replace(month=12, day=28),
                             travel=travel, clock=clock)
    with pytest.raises(RecipeValidationError):
        find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY.replace(day=12),
                             travel=travel, clock=clock)


def test_unknown_references(db, world, travel, clock):
    with pytest.raises(NotFoundError):
        find_available_slots(db, 999, world.home.id, NEXT_MONDAY, travel=travel, clock=clock)
    with pytest.raises(NotFoundError):
        find_available_slots(db, world.service.id, 999, NEXT_MONDAY, travel=travel, clock=clock)
    with pytest.raises(NotFoundError):
        find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                             walker_id=world.customer.id, travel=travel, clock=clock)


def test_coarser_grid(db, world, travel, clock):
    config = AvailabilityConfig(slot_step_minutes=60)
    [result] = find_available_slots(db, world.service.id, world.home.id, NEXT_MONDAY,
                                    travel=travel, clock=clock, config=config)
    assert len(result.slots) == 8  # 09:00 .. 16:00


def test_config_rejects_odd_step():
    with pytest.raises(ValueError):
        AvailabilityConfig(slot_step_minutes=20)
