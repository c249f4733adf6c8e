"""
Booking creation against the overlap rule: confirmed and active bookings
occupy their car for [start, end], both ends inclusive.
"""
import threading

import pytest

from conftest import TEST_CONFIG
from backoffice import create_app
from backoffice.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.models import Booking, Notification, db
from backoffice.services import AuthService, FleetService
from backoffice.utils.constants import BookingStatus, CarStatus, Event, NotificationType


def test_overlapping_booking_rejected(bookings, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-05")

    with pytest.raises(ConflictError) as exc:
        bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-04", "2025-01-08")
    assert exc.value.message == "Car is not available for the selected dates"


def test_touching_end_date_counts_as_overlap(bookings, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-05")
    with pytest.raises(ConflictError):
        bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-05", "2025-01-06")


def test_adjacent_booking_accepted(bookings, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-05")
    second = bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-06", "2025-01-08")
    assert second.status == BookingStatus.CONFIRMED


def test_cancelled_booking_frees_the_dates(bookings, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    first = bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-05")
    bookings.cancel_booking(first.id)
    again = bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-02", "2025-01-03")
    assert again.id != first.id


def test_other_car_not_affected(bookings, make_car, make_customer, users):
    a, b, cust = make_car(), make_car(), make_customer()
    bookings.create_booking(users["Reception"], a.id, cust.id, "2025-01-01", "2025-01-05")
    assert bookings.create_booking(users["Reception"], b.id, cust.id, "2025-01-01", "2025-01-05")


def test_check_availability_lists_conflicts(bookings, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    first = bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-05")

    busy = bookings.check_availability(car.id, "2025-01-03", "2025-01-04")
    assert not busy.available
    assert [b.id for b in busy.conflicts] == [first.id]

    assert bookings.check_availability(car.id, "2025-01-06", "2025-01-07").available
    # the booking itself is excluded when editing it
    assert bookings.check_availability(car.id, "2025-01-03", "2025-01-04", exclude_booking_id=first.id).available


def test_pricing_and_defaults(bookings, make_car, make_customer, users):
    car, cust = make_car(daily_rate=50), make_customer()
    b = bookings.create_booking(
        users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-04",
        extras=10, taxes=5, discount=20,
    )
    assert b.total_days == 3
    assert b.daily_rate == 50
    assert b.subtotal == 150
    assert b.total_amount == 145
    assert b.paid_amount == 0
    assert b.booking_number.startswith("BK-")


def test_same_day_booking_is_one_day(bookings, make_car, make_customer, users):
    car, cust = make_car(daily_rate=80), make_customer()
    b = bookings.create_booking(users["Reception"], car.id, cust.id, "2025-02-01", "2025-02-01", daily_rate=70)
    assert b.total_days == 1
    assert b.total_amount == 70


def test_create_books_car_and_announces(bookings, notifier, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-05")

    assert db.session.get(type(car), car.id).status == CarStatus.RENTED
    assert notifier.names() == [Event.BOOKING_CREATED]

    rows = db.session.scalars(db.select(Notification).order_by(Notification.id)).all()
    assert [r.type for r in rows] == [NotificationType.BOOKING_CREATED, NotificationType.CAR_PICKUP_NEEDED]
    assert rows[0].user_id is None and rows[0].role_id is None
    assert rows[1].role_id == users["Warehouse"].role_id
    assert rows[1].data["plate_number"] == car.plate_number


def test_booking_numbers_are_unique(bookings, make_car, make_customer, users):
    cust = make_customer()
    numbers = {
        bookings.create_booking(users["Reception"], make_car().id, cust.id, "2025-01-01", "2025-01-02").booking_number
        for _ in range(5)
    }
    assert len(numbers) == 5


@pytest.mark.parametrize(
    "start, end",
    [("2025-01-05", "2025-01-01"), ("not-a-date", "2025-01-01"), (None, "2025-01-01")],
)
def test_bad_ranges(bookings, make_car, make_customer, users, start, end):
    car, cust = make_car(), make_customer()
    with pytest.raises(ValidationError):
        bookings.create_booking(users["Reception"], car.id, cust.id, start, end)


def test_negative_amounts_rejected(bookings, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    with pytest.raises(ValidationError):
        bookings.create_booking(users["Reception"], car.id, cust.id, "2025-01-01", "2025-01-02", discount=-1)


def test_unknown_car_or_customer(bookings, make_car, make_customer, users):
    car, cust = make_car(), make_customer()
    with pytest.raises(NotFoundError):
        bookings.create_booking(users["Reception"], 999, cust.id, "2025-01-01", "2025-01-02")
    with pytest.raises(NotFoundError):
        bookings.create_booking(users["Reception"], car.id, 999, "2025-01-01", "2025-01-02")


def test_concurrent_creates_for_same_range_book_once(tmp_path):
    app = create_app({**TEST_CONFIG, "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'race.db'}"})
    with app.app_context():
        AuthService.seed_roles()
        car = FleetService.create_car({"plate_number": "RACE-1", "brand": "Kia", "model": "Rio", "daily_rate": 30})
        cust = FleetService.create_customer({"full_name": "Racer", "national_id": "RACE-NID"})
        car_id, cust_id = car.id, cust.id

    workers = 8
    barrier = threading.Barrier(workers)
    outcomes = []

    def attempt():
        with app.app_context():
            service = app.extensions["backoffice"]["bookings"]
            barrier.wait()
            try:
                service.create_booking(None, car_id, cust_id, "2025-06-01", "2025-06-05")
                outcomes.append("ok")
            except ConflictError:
                outcomes.append("conflict")

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["conflict"] * (workers - 1) + ["ok"]
    with app.app_context():
        rows = db.session.scalars(db.select(Booking).filter_by(car_id=car_id)).all()
        assert len(rows) == 1
        assert rows[0].status == BookingStatus.CONFIRMED
        db.session.remove()
        db.engine.dispose()
