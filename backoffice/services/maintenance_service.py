from __future__ import annotations

import logging

from ..exceptions import ValidationError
from ..models import Car, MaintenanceProfile, MaintenanceRecord, User, db
from ..models.store import atomic, get_or_raise, paginate
from ..utils.constants import CAR_TRANSITIONS, MAINTENANCE_TRANSITIONS, MaintenanceStatus, transition
from ..utils.dates import local_now, parse_datetime, parse_optional_datetime, today_bounds
from .common import to_float, to_int

logger = logging.getLogger(__name__)

# Event on the maintenance table that leads to each target status
_STATUS_EVENTS = {
    MaintenanceStatus.IN_PROGRESS: "start",
    MaintenanceStatus.COMPLETED: "complete",
}

# Car event implied by a record entering each status
_CAR_EVENTS = {
    MaintenanceStatus.IN_PROGRESS: "start_service",
    MaintenanceStatus.COMPLETED: "finish_service",
}

URGENT_TYPE = "repair"


def _status(value) -> MaintenanceStatus:
    try:
        return MaintenanceStatus.parse(value)
    except ValueError:
        raise ValidationError(f"Unknown maintenance status: {value}") from None


def _drive_car(car: Car, status: MaintenanceStatus) -> None:
    event = _CAR_EVENTS.get(status)
    if event:
        car.status = transition(CAR_TRANSITIONS, car.status, event)


class MaintenanceService:

    @staticmethod
    def create_record(
            user: User | None,
            car_id,
            type: str | None = None,
            description: str | None = None,
            cost=0,
            service_date=None,
            next_service_date=None,
            mileage_at_service=None,
            status=None,
            notes: str | None = None,
    ) -> MaintenanceRecord:
        """Open a maintenance record; in_progress/completed also move the car."""
        status = _status(status or MaintenanceStatus.SCHEDULED)
        cost = to_float(cost, "cost", 0.0)
        if cost < 0:
            raise ValidationError("cost must not be negative")
        service_date = parse_optional_datetime(service_date, "service_date") or local_now()

        with atomic() as session:
            car = get_or_raise(Car, to_int(car_id, "car_id"), "Car", for_update=True)
            mileage = to_int(mileage_at_service, "mileage_at_service")
            record = MaintenanceRecord(
                car=car,
                user_id=user.id if user else None,
                type=(type or "routine").strip(),
                description=description,
                cost=cost,
                service_date=service_date,
                next_service_date=parse_optional_datetime(next_service_date, "next_service_date"),
                mileage_at_service=mileage if mileage is not None else car.mileage,
                status=status,
                notes=notes,
            )
            _drive_car(car, status)
            session.add(record)

        logger.info("maintenance record %s for car %s (%s)", record.id, car.id, status.value)
        return record

    @staticmethod
    def update_record(record_id, fields: dict) -> MaintenanceRecord:
        """Apply edits; a status change must follow the maintenance table."""
        fields = dict(fields or {})
        with atomic():
            record = MaintenanceService.get_record(record_id)

            if "status" in fields and fields["status"] is not None:
                target = _status(fields.pop("status"))
                if target != record.status:
                    event = _STATUS_EVENTS.get(target)
                    if event is None:
                        raise ValidationError(f"Cannot move a record back to '{target.value}'")
                    record.status = transition(MAINTENANCE_TRANSITIONS, record.status, event)
                    _drive_car(record.car, record.status)
            fields.pop("status", None)

            for name in ("type", "description", "notes"):
                if name in fields:
                    setattr(record, name, fields[name])
            if "cost" in fields:
                record.cost = to_float(fields["cost"], "cost")
            if "mileage_at_service" in fields:
                record.mileage_at_service = to_int(fields["mileage_at_service"], "mileage_at_service")
            if fields.get("service_date"):
                record.service_date = parse_datetime(fields["service_date"], "service_date")
            if "next_service_date" in fields:
                record.next_service_date = parse_optional_datetime(fields["next_service_date"], "next_service_date")

        logger.info("maintenance record %s updated (%s)", record.id, record.status.value)
        return record

    @staticmethod
    def delete_record(record_id) -> None:
        with atomic() as session:
            session.delete(MaintenanceService.get_record(record_id))

    @staticmethod
    def get_record(record_id) -> MaintenanceRecord:
        return get_or_raise(MaintenanceRecord, to_int(record_id, "record_id"), "Maintenance record")

    @staticmethod
    def list_records(car_id=None, status=None, type=None, page: int = 1, limit: int = 20) -> dict:
        stmt = db.select(MaintenanceRecord)
        if car_id:
            stmt = stmt.where(MaintenanceRecord.car_id == to_int(car_id, "car_id"))
        if status:
            stmt = stmt.where(MaintenanceRecord.status == _status(status))
        if type:
            stmt = stmt.where(MaintenanceRecord.type == type)
        stmt = stmt.order_by(MaintenanceRecord.service_date.desc(), MaintenanceRecord.id.desc())

        def serialize(record):
            d = record.to_dict()
            d["car"] = record.car.to_dict()
            return d

        return paginate(stmt, page, limit, "records", serialize)

    # --------------- Profiles ---------------
    @staticmethod
    def list_profiles() -> list[dict]:
        counts = dict(
            db.session.execute(
                db.select(Car.maintenance_profile_id, db.func.count(Car.id))
                .where(Car.maintenance_profile_id.is_not(None), Car.is_deleted.is_(False))
                .group_by(Car.maintenance_profile_id)
            ).all()
        )
        profiles = db.session.scalars(db.select(MaintenanceProfile).order_by(MaintenanceProfile.id))
        out = []
        for p in profiles:
            d = p.to_dict()
            d["car_count"] = counts.get(p.id, 0)
            out.append(d)
        return out

    @staticmethod
    def create_profile(name, mileage_threshold=None, days_threshold=None, description=None) -> MaintenanceProfile:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")
        mileage_threshold = to_int(mileage_threshold, "mileage_threshold")
        days_threshold = to_int(days_threshold, "days_threshold")
        if not mileage_threshold and not days_threshold:
            raise ValidationError("A profile needs a mileage or days threshold")
        with atomic() as session:
            profile = MaintenanceProfile(
                name=name,
                mileage_threshold=mileage_threshold,
                days_threshold=days_threshold,
                description=description,
            )
            session.add(profile)
        return profile

    # --------------- Mechanic dashboard ---------------
    @staticmethod
    def mechanic_view(now=None) -> dict:
        """Work queue counters and the open tasks, newest first."""
        day_start, day_end = today_bounds(now)
        records = list(db.session.scalars(
            db.select(MaintenanceRecord).order_by(MaintenanceRecord.service_date.desc())
        ))
        open_records = [r for r in records if r.status != MaintenanceStatus.COMPLETED]

        stats = {
            "pending": sum(1 for r in records if r.status == MaintenanceStatus.SCHEDULED),
            "in_progress": sum(1 for r in records if r.status == MaintenanceStatus.IN_PROGRESS),
            "completed_today": sum(
                1 for r in records
                if r.status == MaintenanceStatus.COMPLETED and day_start <= r.service_date < day_end
            ),
            "urgent": sum(1 for r in open_records if r.type == URGENT_TYPE),
        }
        tasks = [
            {
                "id": r.id,
                "car": {
                    "id": r.car.id,
                    "brand": r.car.brand,
                    "model": r.car.model,
                    "plate_number": r.car.plate_number,
                    "mileage": r.car.mileage,
                },
                "type": r.type,
                "description": r.description,
                "status": "pending" if r.status == MaintenanceStatus.SCHEDULED else r.status.value,
                "priority": "high" if r.type == URGENT_TYPE else "medium",
                "scheduled_date": r.service_date.isoformat(),
                "cost": r.cost,
            }
            for r in open_records
        ]
        return {"stats": stats, "tasks": tasks}
