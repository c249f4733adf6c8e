from .store import db
from .user import Permission, Role, User, Notification, role_permissions
from .fleet import Car, Customer, MaintenanceProfile, MaintenanceRecord
from .booking import Booking, Transaction

__all__ = [
    "db",
    "Permission",
    "Role",
    "User",
    "Notification",
    "role_permissions",
    "Car",
    "Customer",
    "MaintenanceProfile",
    "MaintenanceRecord",
    "Booking",
    "Transaction",
]
