"""
Minimal cron runner: five-field cron expressions evaluated against the
server-local wall clock, one daemon thread waking for due jobs.

Each due job runs on its own thread inside an application context. A run
that is still busy when its next tick fires is not waited for.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from ..models import db
from ..utils.dates import local_now

logger = logging.getLogger(__name__)

# (name, low, high) for minute, hour, day-of-month, month, day-of-week
_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day", 1, 31),
    ("month", 1, 12),
    ("weekday", 0, 7),
)


def _parse_field(text: str, name: str, low: int, high: int) -> set[int]:
    values: set[int] = set()
    for part in text.split(","):
        rng, _, step_s = part.partition("/")
        step = int(step_s) if step_s else 1
        if step < 1:
            raise ValueError(f"Bad step in {name} field: {part!r}")
        if rng == "*":
            start, stop = low, high
        elif "-" in rng:
            a, b = rng.split("-", 1)
            start, stop = int(a), int(b)
        else:
            start = int(rng)
            stop = high if step_s else start
        if start < low or stop > high or start > stop:
            raise ValueError(f"Value out of range in {name} field: {part!r}")
        values.update(range(start, stop + 1, step))
    if name == "weekday":
        # 7 is an alias for Sunday
        values = {v % 7 for v in values}
    return values


class CronSchedule:
    """A parsed cron expression such as '0 8 * * *'."""

    def __init__(self, expr: str):
        parts = expr.split()
        if len(parts) != 5:
            raise ValueError(f"Cron expression needs 5 fields: {expr!r}")
        self.expr = expr
        parsed = [_parse_field(p, *spec) for p, spec in zip(parts, _FIELDS)]
        self.minutes, self.hours, self.days, self.months, self.weekdays = parsed
        self._any_day = parts[2] == "*"
        self._any_weekday = parts[4] == "*"

    def _day_matches(self, dt: datetime) -> bool:
        weekday = (dt.weekday() + 1) % 7  # cron counts from Sunday
        dom = dt.day in self.days
        dow = weekday in self.weekdays
        if self._any_day and self._any_weekday:
            return True
        if self._any_day:
            return dow
        if self._any_weekday:
            return dom
        return dom or dow

    def matches(self, dt: datetime) -> bool:
        return (
            dt.minute in self.minutes
            and dt.hour in self.hours
            and dt.month in self.months
            and self._day_matches(dt)
        )

    def next_after(self, dt: datetime) -> datetime:
        """First matching minute strictly after ``dt``."""
        t = dt.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = t + timedelta(days=366 * 5)
        while t <= limit:
            if t.month not in self.months:
                t = (t.replace(day=1, hour=0, minute=0) + timedelta(days=32)).replace(day=1)
                continue
            if not self._day_matches(t):
                t = t.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if t.hour not in self.hours:
                t = t.replace(minute=0) + timedelta(hours=1)
                continue
            if t.minute not in self.minutes:
                t += timedelta(minutes=1)
                continue
            return t
        raise ValueError(f"Cron expression never fires: {self.expr!r}")


@dataclass
class ScheduledJob:
    name: str
    schedule: CronSchedule
    func: Callable[[], object]
    next_run: datetime | None = None
    runs: int = field(default=0)


class CronScheduler:
    """Runs registered jobs on their cron schedules until shutdown()."""

    def __init__(self, app, max_sleep: float = 60.0):
        self.app = app
        self.max_sleep = max_sleep
        self.jobs: list[ScheduledJob] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _now(self) -> datetime:
        with self.app.app_context():
            return local_now()

    def add_job(self, name: str, expr: str, func: Callable[[], object]) -> ScheduledJob:
        job = ScheduledJob(name=name, schedule=CronSchedule(expr), func=func)
        job.next_run = job.schedule.next_after(self._now())
        self.jobs.append(job)
        logger.info("scheduled %s (%s), next run %s", name, expr, job.next_run)
        return job

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="cron-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduled jobs initialized (%d)", len(self.jobs))

    def shutdown(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop.is_set():
            now = self._now()
            for job in self.jobs:
                if job.next_run is not None and job.next_run <= now:
                    self._fire(job)
                    job.next_run = job.schedule.next_after(now)
            upcoming = [j.next_run for j in self.jobs if j.next_run is not None]
            wait = self.max_sleep
            if upcoming:
                wait = min(max((min(upcoming) - self._now()).total_seconds(), 0.5), self.max_sleep)
            self._stop.wait(wait)

    def _fire(self, job: ScheduledJob) -> None:
        threading.Thread(target=self.run_job, args=(job,), name=f"cron-{job.name}", daemon=True).start()

    def run_job(self, job: ScheduledJob):
        """Run one job now; errors are logged and left for the next tick."""
        with self.app.app_context():
            try:
                result = job.func()
                job.runs += 1
                logger.info("job %s finished: %s", job.name, result)
                return result
            except Exception:
                logger.exception("job %s failed; will retry on next tick", job.name)
                return None
            finally:
                db.session.remove()
