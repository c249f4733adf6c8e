from __future__ import annotations

from ..models import Booking, Car, Customer, Transaction, db
from ..utils.constants import OCCUPYING_STATUSES, BookingStatus, CarStatus, TransactionType
from ..utils.dates import local_now, parse_optional_datetime, today_bounds
from .common import round2

# Bookings that count towards a car's utilisation
UTILIZATION_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.ACTIVE, BookingStatus.COMPLETED)


def _count(stmt) -> int:
    return db.session.scalar(stmt) or 0


class ReportService:
    """Aggregations for dashboards and finance views."""

    @staticmethod
    def dashboard(now=None) -> dict:
        now = now or local_now()
        day_start, day_end = today_bounds(now)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        # Fleet by status (live cars only)
        by_status = dict(db.session.execute(
            db.select(Car.status, db.func.count(Car.id))
            .where(Car.is_deleted.is_(False))
            .group_by(Car.status)
        ).all())
        fleet = {"total": sum(by_status.values())}
        for status in CarStatus:
            fleet[status.value] = by_status.get(status, 0)

        customers = _count(
            db.select(db.func.count(Customer.id)).where(Customer.is_deleted.is_(False))
        )
        active = _count(
            db.select(db.func.count(Booking.id)).where(Booking.status.in_(OCCUPYING_STATUSES))
        )
        today = _count(
            db.select(db.func.count(Booking.id))
            .where(Booking.start_date >= day_start, Booking.start_date < day_end)
        )
        month_revenue = db.session.scalar(
            db.select(db.func.coalesce(db.func.sum(Transaction.amount), 0.0))
            .where(Transaction.type == TransactionType.PAYMENT, Transaction.transaction_date >= month_start)
        )

        return {
            "fleet": fleet,
            "customers": customers,
            "bookings": {"active": active, "today": today},
            "revenue": {"month": round2(month_revenue or 0)},
        }

    @staticmethod
    def revenue(start_date=None, end_date=None) -> dict:
        """Payments in [start, end], oldest first, with their total."""
        stmt = db.select(Transaction).where(Transaction.type == TransactionType.PAYMENT)
        start = parse_optional_datetime(start_date, "start_date")
        end = parse_optional_datetime(end_date, "end_date")
        if start:
            stmt = stmt.where(Transaction.transaction_date >= start)
        if end:
            stmt = stmt.where(Transaction.transaction_date <= end)
        rows = list(db.session.scalars(stmt.order_by(Transaction.transaction_date, Transaction.id)))
        return {
            "transactions": [t.to_dict() for t in rows],
            "total": round2(sum(t.amount for t in rows)),
        }

    @staticmethod
    def fleet_utilization() -> list[dict]:
        counts = dict(db.session.execute(
            db.select(Booking.car_id, db.func.count(Booking.id))
            .where(Booking.status.in_(UTILIZATION_STATUSES))
            .group_by(Booking.car_id)
        ).all())
        cars = db.session.scalars(db.select(Car).where(Car.is_deleted.is_(False)).order_by(Car.id))
        out = []
        for car in cars:
            d = car.to_dict()
            d["booking_count"] = counts.get(car.id, 0)
            out.append(d)
        out.sort(key=lambda x: x["booking_count"], reverse=True)
        return out
