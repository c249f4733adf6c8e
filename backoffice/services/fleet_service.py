from __future__ import annotations

import logging

from ..exceptions import ConflictError, ValidationError
from ..models import Booking, Car, Customer, MaintenanceProfile, db
from ..models.store import atomic, get_or_raise, paginate
from ..utils.constants import CAR_TRANSITIONS, OCCUPYING_STATUSES, CarStatus, transition
from .common import to_float, to_int

logger = logging.getLogger(__name__)

CAR_FIELDS = ("plate_number", "vin", "brand", "model", "year", "color", "category",
              "daily_rate", "mileage", "maintenance_profile_id")
CUSTOMER_FIELDS = ("full_name", "national_id", "license_number", "phone", "email", "address")


def _required(data: dict, *names: str) -> None:
    missing = [n for n in names if not str(data.get(n) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _taken(model, column, value, exclude_id=None) -> bool:
    """Unique columns stay unique across soft-deleted rows too."""
    if value in (None, ""):
        return False
    stmt = db.select(model.id).where(column == value)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    return db.session.scalar(stmt) is not None


def _has_open_bookings(car_id) -> bool:
    stmt = db.select(
        db.select(Booking.id)
        .where(Booking.car_id == car_id, Booking.status.in_(OCCUPYING_STATUSES))
        .exists()
    )
    return bool(db.session.scalar(stmt))


def _like(text: str) -> str:
    return f"%{text.strip().lower()}%"


class FleetService:
    """Car and customer registry with soft delete."""

    # --------------- Cars ---------------
    @staticmethod
    def list_cars(status=None, category=None, search=None, page: int = 1, limit: int = 20) -> dict:
        # 1. Live rows only
        stmt = db.select(Car).where(Car.is_deleted.is_(False))

        # 2. Status / category filters
        if status:
            try:
                stmt = stmt.where(Car.status == CarStatus(status))
            except ValueError:
                raise ValidationError(f"Unknown car status: {status}") from None
        if category:
            stmt = stmt.where(Car.category == category)

        # 3. Free-text search over plate, brand and model (case-insensitive)
        if search and search.strip():
            kw = _like(search)
            stmt = stmt.where(db.or_(
                db.func.lower(Car.plate_number).like(kw),
                db.func.lower(Car.brand).like(kw),
                db.func.lower(Car.model).like(kw),
            ))

        stmt = stmt.order_by(Car.created_at.desc(), Car.id.desc())
        return paginate(stmt, page, limit, "cars")

    @staticmethod
    def get_car(car_id) -> Car:
        return get_or_raise(Car, to_int(car_id, "car_id"), "Car")

    @staticmethod
    def _apply_car_fields(car: Car, data: dict) -> None:
        for name in ("plate_number", "vin", "brand", "model", "color", "category"):
            if name in data:
                value = data[name]
                setattr(car, name, value.strip() if isinstance(value, str) else value)
        if "year" in data:
            car.year = to_int(data["year"], "year")
        if "daily_rate" in data:
            rate = to_float(data["daily_rate"], "daily_rate")
            if rate < 0:
                raise ValidationError("daily_rate must not be negative")
            car.daily_rate = rate
        if "mileage" in data:
            mileage = to_int(data["mileage"], "mileage", 0)
            if mileage < 0:
                raise ValidationError("mileage must not be negative")
            car.mileage = mileage
        if "maintenance_profile_id" in data:
            profile_id = to_int(data["maintenance_profile_id"], "maintenance_profile_id")
            if profile_id is not None:
                get_or_raise(MaintenanceProfile, profile_id, "Maintenance profile")
            car.maintenance_profile_id = profile_id

    @staticmethod
    def create_car(data: dict) -> Car:
        data = {k: v for k, v in (data or {}).items() if k in CAR_FIELDS}
        _required(data, "plate_number", "brand", "model")
        with atomic() as session:
            if _taken(Car, Car.plate_number, str(data["plate_number"]).strip()):
                raise ConflictError("A car with this plate number already exists")
            if _taken(Car, Car.vin, data.get("vin")):
                raise ConflictError("A car with this VIN already exists")
            car = Car(status=CarStatus.AVAILABLE, mileage=0, daily_rate=0.0)
            FleetService._apply_car_fields(car, data)
            session.add(car)
        logger.info("car %s added (%s)", car.id, car.plate_number)
        return car

    @staticmethod
    def update_car(car_id, data: dict) -> Car:
        """Edit car details. Status is driven by bookings and maintenance, except selling."""
        data = dict(data or {})
        status = data.pop("status", None)
        with atomic():
            car = FleetService.get_car(car_id)
            if "plate_number" in data and _taken(Car, Car.plate_number, data["plate_number"], car.id):
                raise ConflictError("A car with this plate number already exists")
            if "vin" in data and _taken(Car, Car.vin, data["vin"], car.id):
                raise ConflictError("A car with this VIN already exists")
            FleetService._apply_car_fields(car, {k: v for k, v in data.items() if k in CAR_FIELDS})
            if status and status != car.status.value:
                if status != CarStatus.SOLD.value:
                    raise ValidationError("Car status only changes through bookings or maintenance")
                if _has_open_bookings(car.id):
                    raise ConflictError("Cannot sell a car with confirmed or active bookings")
                car.status = transition(CAR_TRANSITIONS, car.status, "sell")
        return car

    @staticmethod
    def delete_car(car_id) -> None:
        with atomic():
            car = FleetService.get_car(car_id)
            if _has_open_bookings(car.id):
                raise ConflictError("Cannot delete a car with confirmed or active bookings")
            car.soft_delete()
        logger.info("car %s soft-deleted", car_id)

    # --------------- Customers ---------------
    @staticmethod
    def list_customers(search=None, page: int = 1, limit: int = 20) -> dict:
        stmt = db.select(Customer).where(Customer.is_deleted.is_(False))
        if search and search.strip():
            kw = _like(search)
            stmt = stmt.where(db.or_(
                db.func.lower(Customer.full_name).like(kw),
                db.func.lower(Customer.national_id).like(kw),
                db.func.lower(Customer.phone).like(kw),
                db.func.lower(Customer.email).like(kw),
            ))
        stmt = stmt.order_by(Customer.created_at.desc(), Customer.id.desc())
        return paginate(stmt, page, limit, "customers")

    @staticmethod
    def get_customer(customer_id) -> Customer:
        return get_or_raise(Customer, to_int(customer_id, "customer_id"), "Customer")

    @staticmethod
    def create_customer(data: dict) -> Customer:
        data = {k: v for k, v in (data or {}).items() if k in CUSTOMER_FIELDS}
        _required(data, "full_name", "national_id")
        with atomic() as session:
            if _taken(Customer, Customer.national_id, str(data["national_id"]).strip()):
                raise ConflictError("A customer with this national ID already exists")
            customer = Customer(**{k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()})
            session.add(customer)
        return customer

    @staticmethod
    def update_customer(customer_id, data: dict) -> Customer:
        data = {k: v for k, v in (data or {}).items() if k in CUSTOMER_FIELDS}
        with atomic():
            customer = FleetService.get_customer(customer_id)
            if "national_id" in data and _taken(Customer, Customer.national_id, data["national_id"], customer.id):
                raise ConflictError("A customer with this national ID already exists")
            for name, value in data.items():
                setattr(customer, name, value.strip() if isinstance(value, str) else value)
        return customer

    @staticmethod
    def delete_customer(customer_id) -> None:
        with atomic():
            FleetService.get_customer(customer_id).soft_delete()
        logger.info("customer %s soft-deleted", customer_id)
