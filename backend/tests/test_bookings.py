import pytest

from conftest import NEXT_MONDAY, local, make_block, make_booking, make_user, set_working_hours
from offleash.models.generated import Bookings
from offleash.services.bookings import create_block, create_booking
from offleash.services.errors import BookingConflict, NotFoundError, RecipeValidationError


def book(db, world, start, customer=None, **kwargs):
    return create_booking(
        db,
        customer_id=(customer or world.customer).id,
        walker_id=world.walker.id,
        service_id=world.service.id,
        location_id=world.home.id,
        start=start,
        **kwargs,
    )


def test_booking_defaults_from_service(db, world):
    booking = book(db, world, local(NEXT_MONDAY, "10:00"))
    assert booking.scheduled_end - booking.scheduled_start == (
        local(NEXT_MONDAY, "10:30") - local(NEXT_MONDAY, "10:00")
    )
    assert booking.price_cents == 2500
    assert booking.status == "confirmed"
    assert booking.organization_id == world.org.id


def test_overlapping_booking_is_refused(db, world):
    book(db, world, local(NEXT_MONDAY, "10:00"))
    with pytest.raises(BookingConflict) as exc:
        book(db, world, local(NEXT_MONDAY, "10:15"), customer=world.other_customer)
    assert exc.value.reason == "slot unavailable"


def test_back_to_back_bookings_are_fine(db, world):
    book(db, world, local(NEXT_MONDAY, "10:00"))
    book(db, world, local(NEXT_MONDAY, "10:30"), customer=world.other_customer)
    assert db.query(Bookings).count() == 2


def test_cancelled_booking_frees_the_slot(db, world):
    make_booking(db, world.walker, world.customer, world.service, world.home,
                 local(NEXT_MONDAY, "10:00"), local(NEXT_MONDAY, "10:30"), status="cancelled")
    book(db, world, local(NEXT_MONDAY, "10:00"))
    assert db.query(Bookings).filter(Bookings.status != "cancelled").count() == 1


def test_blocking_block_refuses_booking(db, world):
    make_block(db, world.walker, local(NEXT_MONDAY, "12:00"), local(NEXT_MONDAY, "13:00"), reason="Lunch")
    with pytest.raises(BookingConflict) as exc:
        book(db, world, local(NEXT_MONDAY, "12:30"))
    assert "Lunch" in exc.value.reason


def test_non_blocking_block_allows_booking(db, world):
    make_block(db, world.walker, local(NEXT_MONDAY, "12:00"), local(NEXT_MONDAY, "13:00"), is_blocking=0)
    book(db, world, local(NEXT_MONDAY, "12:30"))


def test_end_before_start(db, world):
    with pytest.raises(RecipeValidationError):
        book(db, world, local(NEXT_MONDAY, "12:30"), end=local(NEXT_MONDAY, "12:00"))


def test_unknown_walker(db, world):
    with pytest.raises(NotFoundError):
        create_booking(db, world.customer.id, 999, world.service.id, world.home.id, local(NEXT_MONDAY, "09:00"))


def test_block_conflicts_with_booking(db, world):
    book(db, world, local(NEXT_MONDAY, "10:00"))
    with pytest.raises(BookingConflict):
        create_block(db, world.walker.id, "Errand", local(NEXT_MONDAY, "09:45"), local(NEXT_MONDAY, "10:15"))


def test_block_conflicts_with_blocking_block(db, world):
    create_block(db, world.walker.id, "Errand", local(NEXT_MONDAY, "09:00"), local(NEXT_MONDAY, "10:00"))
    with pytest.raises(BookingConflict) as exc:
        create_block(db, world.walker.id, "Gym", local(NEXT_MONDAY, "09:30"), local(NEXT_MONDAY, "10:30"))
    assert "Errand" in exc.value.reason


def test_non_blocking_block_never_conflicts(db, world):
    book(db, world, local(NEXT_MONDAY, "10:00"))
    block = create_block(db, world.walker.id, "Reminder", local(NEXT_MONDAY, "10:00"),
                         local(NEXT_MONDAY, "10:30"), is_blocking=False)
    assert block.is_blocking == 0


def test_same_customer_service_and_start_is_a_duplicate(db, world):
    other_walker = make_user(db, world.org, "Wendy", role="walker")
    set_working_hours(db, other_walker, 1)
    book(db, world, local(NEXT_MONDAY, "10:00"))
    with pytest.raises(BookingConflict) as exc:
        create_booking(db, world.customer.id, other_walker.id, world.service.id, world.home.id,
                       local(NEXT_MONDAY, "10:00"))
    assert exc.value.reason == "duplicate booking"
