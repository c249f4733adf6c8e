"""Booking lifecycle: availability, create, pickup, return, cancel, update."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

from ..exceptions import ConflictError, ValidationError
from ..models import Booking, Car, Customer, User, db
from ..models.store import atomic, get_or_raise, paginate
from ..utils.constants import (
    BOOKING_TRANSITIONS,
    CAR_TRANSITIONS,
    LOGISTICS_ROLE,
    OCCUPYING_STATUSES,
    BookingStatus,
    Event,
    NotificationType,
    transition,
)
from ..utils.dates import local_now, parse_datetime, parse_optional_datetime
from .common import booking_number, round2, to_float, to_int, total_days
from .notification_service import Broadcast, NotificationService, ToRole

logger = logging.getLogger(__name__)

# Serialises conflict-check-and-insert inside this process; the car row
# lock below covers concurrent writers on databases with SELECT ... FOR UPDATE.
_create_lock = threading.Lock()


@dataclass
class Availability:
    available: bool
    conflicts: list[Booking] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "conflicts": [b.to_dict(with_relations=False) for b in self.conflicts],
        }


def _validated_range(start_date, end_date):
    start = parse_datetime(start_date, "start_date")
    end = parse_datetime(end_date, "end_date")
    if end < start:
        raise ValidationError("End date must not be before start date")
    return start, end


def _non_negative(value, name: str, default: float | None = None) -> float:
    result = to_float(value, name, default)
    if result < 0:
        raise ValidationError(f"{name} must not be negative")
    return result


def _mileage(value) -> int | None:
    mileage = to_int(value, "mileage")
    if mileage is not None and mileage < 0:
        raise ValidationError("mileage must not be negative")
    return mileage


def _price(booking: Booking) -> None:
    """Derive total_days, subtotal and total_amount from dates and rates."""
    booking.total_days = total_days(booking.start_date, booking.end_date)
    booking.subtotal = round2(booking.total_days * booking.daily_rate)
    booking.total_amount = round2(booking.subtotal + booking.extras + booking.taxes - booking.discount)


class BookingService:
    """
    Owns the booking state machine and the car status changes it implies.
    Notifications go through the injected NotificationService.
    """

    EDITABLE_FIELDS = {
        "start_date", "end_date", "daily_rate", "extras", "taxes", "discount",
        "notes", "mileage_out", "mileage_in",
    }

    def __init__(self, notifications: NotificationService):
        self.notifications = notifications

    # --------------- Queries ---------------
    @staticmethod
    def find_conflicts(car_id, start, end, exclude_booking_id=None) -> list[Booking]:
        """
        Occupying bookings of ``car_id`` whose closed interval intersects
        [start, end]: existing.start <= end and existing.end >= start.
        """
        stmt = db.select(Booking).where(
            Booking.car_id == car_id,
            Booking.status.in_(OCCUPYING_STATUSES),
            Booking.start_date <= end,
            Booking.end_date >= start,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        return list(db.session.scalars(stmt.order_by(Booking.start_date)))

    def check_availability(self, car_id, start_date, end_date, exclude_booking_id=None) -> Availability:
        start, end = _validated_range(start_date, end_date)
        conflicts = self.find_conflicts(
            to_int(car_id, "car_id"), start, end, to_int(exclude_booking_id, "exclude_booking_id")
        )
        return Availability(available=not conflicts, conflicts=conflicts)

    @staticmethod
    def get_booking(booking_id) -> Booking:
        return get_or_raise(Booking, to_int(booking_id, "booking_id"), "Booking")

    @staticmethod
    def list_bookings(status=None, start_date=None, end_date=None, page: int = 1, limit: int = 20) -> dict:
        stmt = db.select(Booking)
        if status:
            try:
                stmt = stmt.where(Booking.status == BookingStatus(status))
            except ValueError:
                raise ValidationError(f"Unknown booking status: {status}") from None
        start = parse_optional_datetime(start_date, "start_date")
        end = parse_optional_datetime(end_date, "end_date")
        if start:
            stmt = stmt.where(Booking.start_date >= start)
        if end:
            stmt = stmt.where(Booking.end_date <= end)
        stmt = stmt.order_by(Booking.created_at.desc(), Booking.id.desc())
        return paginate(stmt, page, limit, "bookings")

    # --------------- Commands ---------------
    def create_booking(
            self,
            user: User | None,
            car_id,
            customer_id,
            start_date,
            end_date,
            daily_rate=None,
            extras=0,
            taxes=0,
            discount=0,
            notes: str | None = None,
    ) -> Booking:
        """
        Reserve a car if no confirmed/active booking overlaps the range.
        The availability read, the insert and the car status change commit
        together; notifications follow the commit.
        """
        start, end = _validated_range(start_date, end_date)
        extras = _non_negative(extras, "extras", 0.0)
        taxes = _non_negative(taxes, "taxes", 0.0)
        discount = _non_negative(discount, "discount", 0.0)

        with _create_lock, atomic() as session:
            car = get_or_raise(Car, to_int(car_id, "car_id"), "Car", for_update=True)
            customer = get_or_raise(Customer, to_int(customer_id, "customer_id"), "Customer")

            if self.find_conflicts(car.id, start, end):
                raise ConflictError("Car is not available for the selected dates")

            booking = Booking(
                booking_number=self._unique_booking_number(),
                car=car,
                customer=customer,
                user_id=user.id if user else None,
                start_date=start,
                end_date=end,
                daily_rate=_non_negative(daily_rate, "daily_rate", car.daily_rate),
                extras=extras,
                taxes=taxes,
                discount=discount,
                paid_amount=0.0,
                status=BookingStatus.CONFIRMED,
                notes=notes,
            )
            _price(booking)
            car.status = transition(CAR_TRANSITIONS, car.status, "book")
            session.add(booking)

        logger.info("booking %s created car=%s %s..%s", booking.booking_number, car.id, start, end)
        self._announce_created(booking)
        return booking

    def pickup_booking(self, booking_id, mileage=None) -> Booking:
        """Hand the car over: confirmed -> active."""
        mileage = _mileage(mileage)
        with atomic():
            booking = self.get_booking(booking_id)
            booking.status = transition(BOOKING_TRANSITIONS, booking.status, "pickup")
            booking.pickup_date = local_now()
            if mileage is not None:
                booking.mileage_out = mileage
            booking.car.status = transition(CAR_TRANSITIONS, booking.car.status, "book")

        logger.info("booking %s picked up", booking.booking_number)
        self.notifications.publish(Event.BOOKING_PICKUP, booking.to_dict())
        return booking

    def return_booking(self, booking_id, mileage=None) -> Booking:
        """Take the car back: active -> completed, car available again."""
        mileage = _mileage(mileage)
        with atomic():
            booking = self.get_booking(booking_id)
            booking.status = transition(BOOKING_TRANSITIONS, booking.status, "return")
            booking.return_date = local_now()
            car = booking.car
            car.status = transition(CAR_TRANSITIONS, car.status, "release")
            if mileage is not None:
                booking.mileage_in = mileage
                car.mileage = mileage

        logger.info("booking %s returned", booking.booking_number)
        return booking

    def cancel_booking(self, booking_id) -> Booking:
        with atomic():
            booking = self.get_booking(booking_id)
            booking.status = transition(BOOKING_TRANSITIONS, booking.status, "cancel")
            booking.car.status = transition(CAR_TRANSITIONS, booking.car.status, "release")

        logger.info("booking %s cancelled", booking.booking_number)
        return booking

    def update_booking(self, booking_id, fields: dict) -> Booking:
        """
        Merge editable fields and recompute totals.
        Availability is NOT re-checked here; callers that move dates should
        call check_availability(..., exclude_booking_id=booking_id) first.
        """
        fields = dict(fields or {})
        if "status" in fields:
            raise ValidationError("Status changes go through pickup, return or cancel")
        unknown = set(fields) - self.EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

        with atomic():
            booking = self.get_booking(booking_id)
            if "start_date" in fields:
                booking.start_date = parse_datetime(fields["start_date"], "start_date")
            if "end_date" in fields:
                booking.end_date = parse_datetime(fields["end_date"], "end_date")
            if booking.end_date < booking.start_date:
                raise ValidationError("End date must not be before start date")
            for name in ("daily_rate", "extras", "taxes", "discount"):
                if name in fields:
                    setattr(booking, name, _non_negative(fields[name], name))
            for name in ("mileage_out", "mileage_in"):
                if name in fields:
                    setattr(booking, name, _mileage(fields[name]))
            if "notes" in fields:
                booking.notes = fields["notes"]
            _price(booking)

        return booking

    # --------------- Internals ---------------
    @staticmethod
    def _unique_booking_number() -> str:
        """Time-derived booking number; bump the suffix while it is taken."""
        millis = int(time.time() * 1000)
        number = booking_number(millis=millis)
        while db.session.scalar(db.select(Booking.id).filter_by(booking_number=number)) is not None:
            millis += 1
            number = booking_number(millis=millis)
        return number

    def _announce_created(self, booking: Booking) -> None:
        car, customer = booking.car, booking.customer
        self.notifications.notify(
            Broadcast(),
            NotificationType.BOOKING_CREATED,
            "New booking",
            f"New booking for {customer.full_name} - {car.brand} {car.model}",
            {"booking_id": booking.id},
        )

        logistics = self.notifications.role_by_name(LOGISTICS_ROLE)
        if logistics:
            self.notifications.notify(
                ToRole(logistics.id),
                NotificationType.CAR_PICKUP_NEEDED,
                "Car pickup request",
                f"Please bring {car.label} to reception for {customer.full_name}",
                {
                    "booking_id": booking.id,
                    "car_id": car.id,
                    "plate_number": car.plate_number,
                    "customer_name": customer.full_name,
                },
            )

        self.notifications.publish(Event.BOOKING_CREATED, booking.to_dict())
