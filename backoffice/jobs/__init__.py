from .scheduler import CronSchedule, CronScheduler
from .sweeps import SweepJobs

OVERDUE_CRON = "0 * * * *"
PICKUP_DUE_CRON = "0 8 * * *"
MAINTENANCE_DUE_CRON = "0 9 * * *"


def build_scheduler(app, sweeps: SweepJobs) -> CronScheduler:
    """Register the three reminder sweeps on a scheduler (not started)."""
    scheduler = CronScheduler(app)
    scheduler.add_job("overdue_bookings", OVERDUE_CRON, sweeps.overdue_sweep)
    scheduler.add_job("pickup_reminders", PICKUP_DUE_CRON, sweeps.pickup_due_sweep)
    scheduler.add_job("maintenance_reminders", MAINTENANCE_DUE_CRON, sweeps.maintenance_due_sweep)
    return scheduler


__all__ = ["CronSchedule", "CronScheduler", "SweepJobs", "build_scheduler"]
