from ..utils.constants import BookingStatus, TransactionType
from ..utils.dates import local_now
from .fleet import _enum
from .store import db, TimestampMixin, to_iso


class Booking(TimestampMixin, db.Model):
    """
    Reservation of one car for one customer over [start_date, end_date].
    Pricing fields are computed by BookingService; the model only stores them.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        db.Index("ix_bookings_car_status_dates", "car_id", "status", "start_date", "end_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    booking_number = db.Column(db.String(20), unique=True, nullable=False)
    car_id = db.Column(db.Integer, db.ForeignKey("cars.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    total_days = db.Column(db.Integer, nullable=False)
    daily_rate = db.Column(db.Float, nullable=False)
    subtotal = db.Column(db.Float, nullable=False)
    extras = db.Column(db.Float, nullable=False, default=0.0)
    taxes = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Float, nullable=False, default=0.0)
    total_amount = db.Column(db.Float, nullable=False)
    paid_amount = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(_enum(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED, index=True)
    pickup_date = db.Column(db.DateTime, nullable=True)
    return_date = db.Column(db.DateTime, nullable=True)
    mileage_out = db.Column(db.Integer, nullable=True)
    mileage_in = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text)
    updated_at = db.Column(db.DateTime, default=local_now, onupdate=local_now)

    car = db.relationship("Car", back_populates="bookings")
    customer = db.relationship("Customer", back_populates="bookings")
    user = db.relationship("User")
    transactions = db.relationship("Transaction", back_populates="booking")

    def to_dict(self, with_relations: bool = True) -> dict:
        d = {
            "id": self.id,
            "booking_number": self.booking_number,
            "car_id": self.car_id,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "start_date": to_iso(self.start_date),
            "end_date": to_iso(self.end_date),
            "total_days": self.total_days,
            "daily_rate": self.daily_rate,
            "subtotal": self.subtotal,
            "extras": self.extras,
            "taxes": self.taxes,
            "discount": self.discount,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "status": self.status.value,
            "pickup_date": to_iso(self.pickup_date),
            "return_date": to_iso(self.return_date),
            "mileage_out": self.mileage_out,
            "mileage_in": self.mileage_in,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
        }
        if with_relations:
            d["car"] = self.car.to_dict() if self.car else None
            d["customer"] = self.customer.to_dict() if self.customer else None
        return d

    def __repr__(self) -> str:
        return f"<Booking {self.booking_number} car={self.car_id} {self.status.value}>"


class Transaction(TimestampMixin, db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    type = db.Column(_enum(TransactionType), nullable=False)
    category = db.Column(db.String(50))
    amount = db.Column(db.Float, nullable=False)
    description = db.Column(db.Text)
    payment_method = db.Column(db.String(30))
    transaction_date = db.Column(db.DateTime, nullable=False, default=local_now)

    booking = db.relationship("Booking", back_populates="transactions")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "user_id": self.user_id,
            "type": self.type.value,
            "category": self.category,
            "amount": self.amount,
            "description": self.description,
            "payment_method": self.payment_method,
            "transaction_date": to_iso(self.transaction_date),
            "created_at": to_iso(self.created_at),
        }
