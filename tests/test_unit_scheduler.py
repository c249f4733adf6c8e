"""
Scheduler wiring: the three sweeps are registered, and a failing job is
logged without escaping the runner.
"""
import logging

from backoffice import create_app
from backoffice.jobs import build_scheduler
from backoffice.jobs.scheduler import CronScheduler
from conftest import TEST_CONFIG


def test_sweeps_registered(app):
    scheduler = build_scheduler(app, app.extensions["backoffice"]["sweeps"])
    assert {j.name: j.schedule.expr for j in scheduler.jobs} == {
        "overdue_bookings": "0 * * * *",
        "pickup_reminders": "0 8 * * *",
        "maintenance_reminders": "0 9 * * *",
    }
    assert all(j.next_run is not None for j in scheduler.jobs)
    assert not scheduler.running


def test_failing_job_is_logged(app, caplog):
    scheduler = CronScheduler(app)

    def boom():
        raise RuntimeError("db down")

    job = scheduler.add_job("boom", "* * * * *", boom)
    with caplog.at_level(logging.ERROR, logger="backoffice.jobs.scheduler"):
        assert scheduler.run_job(job) is None
    assert "boom failed" in caplog.text
    assert job.runs == 0


def test_job_result_returned(app):
    scheduler = CronScheduler(app)
    job = scheduler.add_job("count", "0 * * * *", app.extensions["backoffice"]["sweeps"].overdue_sweep)
    assert scheduler.run_job(job) == 0
    assert job.runs == 1


def test_scheduler_off_in_tests(app):
    assert app.extensions["backoffice"]["scheduler"] is None


def test_scheduler_starts_when_enabled():
    app = create_app({**TEST_CONFIG, "TESTING": False, "SCHEDULER_ENABLED": True})
    scheduler = app.extensions["backoffice"]["scheduler"]
    try:
        assert scheduler.running
        assert len(scheduler.jobs) == 3
    finally:
        scheduler.shutdown()
    assert not scheduler.running
