from .auth_service import AuthService
from .booking_service import Availability, BookingService
from .fleet_service import FleetService
from .maintenance_service import MaintenanceService
from .notification_service import Broadcast, NotificationService, ToRole, ToUser
from .realtime import BroadcastChannel, Notifier
from .report_service import ReportService
from .transaction_service import TransactionService

__all__ = [
    "AuthService",
    "Availability",
    "BookingService",
    "Broadcast",
    "BroadcastChannel",
    "FleetService",
    "MaintenanceService",
    "NotificationService",
    "Notifier",
    "ReportService",
    "ToRole",
    "ToUser",
    "TransactionService",
]
