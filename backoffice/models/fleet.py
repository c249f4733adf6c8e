from ..utils.constants import CarStatus, MaintenanceStatus
from ..utils.dates import local_now
from .store import db, TimestampMixin, SoftDeleteMixin, to_iso


def _enum(enum_cls):
    """Store the enum's string values (not member names)."""
    return db.Enum(
        enum_cls,
        values_callable=lambda e: [m.value for m in e],
        native_enum=False,
        validate_strings=True,
        length=20,
    )


class MaintenanceProfile(db.Model):
    """Service interval: whichever of mileage or days comes first."""
    __tablename__ = "maintenance_profiles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    mileage_threshold = db.Column(db.Integer, nullable=True)
    days_threshold = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(255))

    cars = db.relationship("Car", back_populates="maintenance_profile")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "mileage_threshold": self.mileage_threshold,
            "days_threshold": self.days_threshold,
            "description": self.description,
        }


class Car(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "cars"

    id = db.Column(db.Integer, primary_key=True)
    plate_number = db.Column(db.String(20), unique=True, nullable=False)
    vin = db.Column(db.String(32), unique=True, nullable=True)
    brand = db.Column(db.String(60), nullable=False)
    model = db.Column(db.String(60), nullable=False)
    year = db.Column(db.Integer)
    color = db.Column(db.String(30))
    category = db.Column(db.String(30))
    daily_rate = db.Column(db.Float, nullable=False, default=0.0)
    mileage = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(_enum(CarStatus), nullable=False, default=CarStatus.AVAILABLE)
    maintenance_profile_id = db.Column(db.Integer, db.ForeignKey("maintenance_profiles.id"), nullable=True)
    updated_at = db.Column(db.DateTime, default=local_now, onupdate=local_now)

    maintenance_profile = db.relationship("MaintenanceProfile", back_populates="cars")
    maintenance_records = db.relationship(
        "MaintenanceRecord", back_populates="car", order_by="MaintenanceRecord.service_date.desc()"
    )
    bookings = db.relationship("Booking", back_populates="car")

    @property
    def label(self) -> str:
        return f"{self.brand} {self.model} ({self.plate_number})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plate_number": self.plate_number,
            "vin": self.vin,
            "brand": self.brand,
            "model": self.model,
            "year": self.year,
            "color": self.color,
            "category": self.category,
            "daily_rate": self.daily_rate,
            "mileage": self.mileage,
            "status": self.status.value,
            "maintenance_profile_id": self.maintenance_profile_id,
            "is_deleted": self.is_deleted,
            "deleted_at": to_iso(self.deleted_at),
            "created_at": to_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Car {self.plate_number}>"


class Customer(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(120), nullable=False)
    national_id = db.Column(db.String(30), unique=True, nullable=False)
    license_number = db.Column(db.String(30))
    phone = db.Column(db.String(50))
    email = db.Column(db.String(120))
    address = db.Column(db.Text)

    bookings = db.relationship("Booking", back_populates="customer")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "national_id": self.national_id,
            "license_number": self.license_number,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "is_deleted": self.is_deleted,
            "created_at": to_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Customer {self.full_name}>"


class MaintenanceRecord(TimestampMixin, db.Model):
    __tablename__ = "maintenance_records"

    id = db.Column(db.Integer, primary_key=True)
    car_id = db.Column(db.Integer, db.ForeignKey("cars.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    type = db.Column(db.String(30), nullable=False, default="routine")
    description = db.Column(db.Text)
    cost = db.Column(db.Float, nullable=False, default=0.0)
    service_date = db.Column(db.DateTime, nullable=False)
    next_service_date = db.Column(db.DateTime, nullable=True)
    mileage_at_service = db.Column(db.Integer, nullable=True)
    status = db.Column(_enum(MaintenanceStatus), nullable=False, default=MaintenanceStatus.SCHEDULED)
    notes = db.Column(db.Text)

    car = db.relationship("Car", back_populates="maintenance_records")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "car_id": self.car_id,
            "user_id": self.user_id,
            "type": self.type,
            "description": self.description,
            "cost": self.cost,
            "service_date": to_iso(self.service_date),
            "next_service_date": to_iso(self.next_service_date),
            "mileage_at_service": self.mileage_at_service,
            "status": self.status.value,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
        }
