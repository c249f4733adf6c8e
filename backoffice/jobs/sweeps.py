"""
Periodic sweeps that scan stored state and emit reminders.

Sweeps keep no record of what they already reported: running one twice
against unchanged data creates the notifications twice. A failure on one
record aborts the rest of that run; the next scheduled tick retries.
"""
from __future__ import annotations

import logging
from datetime import datetime

from ..models import Booking, Car, MaintenanceRecord, db
from ..services.notification_service import Broadcast, NotificationService
from ..utils.constants import BookingStatus, Event, MaintenanceStatus, NotificationType
from ..utils.dates import local_now, today_bounds

logger = logging.getLogger(__name__)


def last_service(car: Car) -> MaintenanceRecord | None:
    """Most recent completed maintenance record of ``car``."""
    stmt = (
        db.select(MaintenanceRecord)
        .where(MaintenanceRecord.car_id == car.id, MaintenanceRecord.status == MaintenanceStatus.COMPLETED)
        .order_by(MaintenanceRecord.service_date.desc(), MaintenanceRecord.id.desc())
        .limit(1)
    )
    return db.session.scalars(stmt).first()


def is_maintenance_due(car: Car, last: MaintenanceRecord | None, now: datetime) -> bool:
    """
    Due when either profile threshold is met or exceeded since the last
    service. Without a profile or a service on record nothing is due.
    """
    profile = car.maintenance_profile
    if profile is None or last is None:
        return False

    if profile.mileage_threshold:
        since = (car.mileage or 0) - (last.mileage_at_service or 0)
        if since >= profile.mileage_threshold:
            return True

    if profile.days_threshold:
        days = (now - last.service_date).days
        if days >= profile.days_threshold:
            return True

    return False


class SweepJobs:
    """The three reminder sweeps, sharing one notification service."""

    def __init__(self, notifications: NotificationService):
        self.notifications = notifications

    def overdue_sweep(self, now: datetime | None = None) -> int:
        """Active bookings whose end date has passed."""
        now = now or local_now()
        logger.info("Running overdue bookings check...")
        stmt = db.select(Booking).where(
            Booking.status == BookingStatus.ACTIVE,
            Booking.end_date < now,
        )
        bookings = list(db.session.scalars(stmt))
        for booking in bookings:
            self.notifications.notify(
                Broadcast(),
                NotificationType.OVERDUE,
                "Overdue booking",
                f"Booking {booking.booking_number} is overdue - customer: {booking.customer.full_name}",
                {"booking_id": booking.id},
                event=Event.BOOKING_OVERDUE,
                event_payload=booking.to_dict(),
            )
        logger.info("Found %d overdue bookings", len(bookings))
        return len(bookings)

    def pickup_due_sweep(self, now: datetime | None = None) -> int:
        """Confirmed bookings starting today."""
        day_start, day_end = today_bounds(now)
        logger.info("Running pickup reminders check...")
        stmt = db.select(Booking).where(
            Booking.status == BookingStatus.CONFIRMED,
            Booking.start_date >= day_start,
            Booking.start_date < day_end,
        )
        bookings = list(db.session.scalars(stmt))
        for booking in bookings:
            car = booking.car
            self.notifications.notify(
                Broadcast(),
                NotificationType.PICKUP_DUE,
                "Car pickup today",
                f"Pickup of {car.brand} {car.model} - customer: {booking.customer.full_name}",
                {"booking_id": booking.id},
                event=Event.BOOKING_PICKUP_DUE,
                event_payload=booking.to_dict(),
            )
        logger.info("Found %d pickups due today", len(bookings))
        return len(bookings)

    def maintenance_due_sweep(self, now: datetime | None = None) -> int:
        """Cars past their profile's mileage or day threshold."""
        now = now or local_now()
        logger.info("Running maintenance reminders check...")
        stmt = db.select(Car).where(
            Car.is_deleted.is_(False),
            Car.maintenance_profile_id.is_not(None),
        )
        flagged = 0
        for car in list(db.session.scalars(stmt)):
            if not is_maintenance_due(car, last_service(car), now):
                continue
            flagged += 1
            self.notifications.notify(
                Broadcast(),
                NotificationType.MAINTENANCE_DUE,
                "Maintenance due",
                f"{car.label} needs maintenance",
                {"car_id": car.id},
                event=Event.MAINTENANCE_DUE,
                event_payload=car.to_dict(),
            )
        logger.info("Maintenance check completed, %d car(s) due", flagged)
        return flagged
