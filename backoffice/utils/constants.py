# backoffice/utils/constants.py

"""
Global constants: status enumerations with their transition tables,
real-time event names, and the static role catalog.
These constants are imported by models, services and controllers.
"""

from enum import Enum

from ..exceptions import InvalidTransitionError


class CarStatus(str, Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    SOLD = "sold"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value) -> "MaintenanceStatus":
        """Accept both 'in_progress' and 'in-progress'."""
        if isinstance(value, cls):
            return value
        return cls(str(value or "").strip().lower().replace("-", "_"))


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    REFUND = "refund"
    PAYMENT = "payment"


# Bookings in these states occupy the car for their date range
OCCUPYING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.ACTIVE)


# --- Transition tables: (from_state, event) -> to_state ---
BOOKING_TRANSITIONS = {
    (BookingStatus.CONFIRMED, "pickup"): BookingStatus.ACTIVE,
    (BookingStatus.CONFIRMED, "cancel"): BookingStatus.CANCELLED,
    (BookingStatus.ACTIVE, "return"): BookingStatus.COMPLETED,
    (BookingStatus.ACTIVE, "cancel"): BookingStatus.CANCELLED,
}

CAR_TRANSITIONS = {
    (CarStatus.AVAILABLE, "book"): CarStatus.RENTED,
    (CarStatus.RENTED, "book"): CarStatus.RENTED,
    (CarStatus.RENTED, "release"): CarStatus.AVAILABLE,
    (CarStatus.AVAILABLE, "release"): CarStatus.AVAILABLE,
    (CarStatus.MAINTENANCE, "release"): CarStatus.MAINTENANCE,
    (CarStatus.SOLD, "release"): CarStatus.SOLD,
    (CarStatus.AVAILABLE, "start_service"): CarStatus.MAINTENANCE,
    (CarStatus.MAINTENANCE, "start_service"): CarStatus.MAINTENANCE,
    (CarStatus.MAINTENANCE, "finish_service"): CarStatus.AVAILABLE,
    (CarStatus.AVAILABLE, "finish_service"): CarStatus.AVAILABLE,
    (CarStatus.RENTED, "finish_service"): CarStatus.RENTED,
    (CarStatus.AVAILABLE, "sell"): CarStatus.SOLD,
    (CarStatus.MAINTENANCE, "sell"): CarStatus.SOLD,
}

MAINTENANCE_TRANSITIONS = {
    (MaintenanceStatus.SCHEDULED, "start"): MaintenanceStatus.IN_PROGRESS,
    (MaintenanceStatus.SCHEDULED, "complete"): MaintenanceStatus.COMPLETED,
    (MaintenanceStatus.IN_PROGRESS, "complete"): MaintenanceStatus.COMPLETED,
}


def transition(table: dict, state: Enum, event: str) -> Enum:
    """Return the target state for ``event`` or raise InvalidTransitionError."""
    target = table.get((state, event))
    if target is None:
        raise InvalidTransitionError(
            f"Cannot {event.replace('_', ' ')} while status is '{state.value}'"
        )
    return target


class Event:
    """Real-time event names pushed over the broadcast channel."""
    BOOKING_CREATED = "booking:created"
    BOOKING_PICKUP = "booking:pickup"
    BOOKING_OVERDUE = "booking:overdue"
    BOOKING_PICKUP_DUE = "booking:pickup_due"
    MAINTENANCE_DUE = "maintenance:due"


class NotificationType:
    BOOKING_CREATED = "booking_created"
    CAR_PICKUP_NEEDED = "car_pickup_needed"
    OVERDUE = "overdue"
    PICKUP_DUE = "pickup_due"
    MAINTENANCE_DUE = "maintenance_due"
    ACKNOWLEDGMENT = "acknowledgment"


class Role:
    ADMIN = "Admin"
    MANAGER = "Manager"
    RECEPTION = "Reception"
    WAREHOUSE = "Warehouse"
    ACCOUNTANT = "Accountant"
    MECHANIC = "Mechanic"


# Pickup requests for newly created bookings go to this role
LOGISTICS_ROLE = Role.WAREHOUSE

RESOURCES = ("cars", "customers", "bookings", "transactions", "maintenance", "reports", "users")
ACTIONS = ("create", "read", "update", "delete")

_CRUD = frozenset(ACTIONS)

ROLE_GRANTS = {
    Role.ADMIN: {r: _CRUD for r in RESOURCES},
    Role.MANAGER: {r: _CRUD for r in RESOURCES if r != "users"},
    Role.RECEPTION: {
        "customers": frozenset({"create", "read", "update"}),
        "bookings": frozenset({"create", "read", "update"}),
        "cars": frozenset({"read"}),
        "transactions": frozenset({"read"}),
    },
    Role.WAREHOUSE: {
        "cars": _CRUD,
        "bookings": frozenset({"read", "update"}),
        "maintenance": frozenset({"read", "create"}),
    },
    Role.ACCOUNTANT: {
        "transactions": _CRUD,
        "reports": frozenset({"read"}),
        "bookings": frozenset({"read", "update"}),
        "customers": frozenset({"read"}),
    },
    Role.MECHANIC: {
        "maintenance": _CRUD,
        "cars": frozenset({"read", "update"}),
    },
}

# Every role may read and send notifications
for _grants in ROLE_GRANTS.values():
    _grants["notifications"] = frozenset({"create", "read"})

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
