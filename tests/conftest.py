import sys, pathlib
from datetime import timedelta

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pytest

from backoffice import create_app
from backoffice.jobs import SweepJobs
from backoffice.models import db
from backoffice.services import AuthService, BookingService, FleetService, NotificationService
from backoffice.utils.constants import Role
from backoffice.utils.dates import local_now
from backoffice.utils.security import create_access_token

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SCHEDULER_ENABLED": False,
    "JWT_SECRET": "test-jwt-secret",
    "SECRET_KEY": "test-secret",
    "TIMEZONE": "UTC",
    "LOG_LEVEL": "WARNING",
}

PASSWORD = "Passw0rd!"


class RecordingNotifier:
    """Stands in for the broadcast channel and remembers every publish."""

    def __init__(self):
        self.events = []

    def publish(self, event, payload, room=None):
        self.events.append((event, payload))
        return 1

    def names(self):
        return [name for name, _ in self.events]


@pytest.fixture
def app():
    """
    App on in-memory SQLite with the scheduler off and the role catalog
    seeded. The app context stays pushed for the whole test.
    """
    app = create_app(TEST_CONFIG)
    with app.app_context():
        AuthService.seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def notifications(app, notifier):
    return NotificationService(notifier)


@pytest.fixture
def bookings(notifications):
    return BookingService(notifications)


@pytest.fixture
def sweeps(notifications):
    return SweepJobs(notifications)


@pytest.fixture
def users(app):
    """One active user per role, keyed by role name."""
    out = {}
    for name in (Role.ADMIN, Role.MANAGER, Role.RECEPTION, Role.WAREHOUSE, Role.ACCOUNTANT, Role.MECHANIC):
        out[name] = AuthService.create_user(
            email=f"{name.lower()}@example.com",
            password=PASSWORD,
            full_name=f"{name} User",
            role_name=name,
        )
    return out


@pytest.fixture
def headers_for(app, users):
    """headers_for('Reception') -> Authorization header for that role's user."""

    def make(role_name):
        token = create_access_token(users[role_name].id, app.config["JWT_SECRET"], 60)
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest.fixture
def make_car(app):
    counter = {"n": 0}

    def make(**overrides):
        counter["n"] += 1
        data = {
            "plate_number": f"TST-{counter['n']:03d}",
            "brand": "Toyota",
            "model": "Corolla",
            "daily_rate": 50,
            "mileage": 10000,
        }
        data.update(overrides)
        return FleetService.create_car(data)

    return make


@pytest.fixture
def make_customer(app):
    counter = {"n": 0}

    def make(**overrides):
        counter["n"] += 1
        data = {
            "full_name": f"Customer {counter['n']}",
            "national_id": f"NID-{counter['n']:05d}",
            "phone": "555-0100",
        }
        data.update(overrides)
        return FleetService.create_customer(data)

    return make


@pytest.fixture
def channel_spy(app):
    """Subscription on the app's broadcast channel; drain() returns event names."""
    channel = app.extensions["backoffice"]["channel"]
    sub = channel.subscribe()

    def drain():
        names = []
        while True:
            item = sub.get(timeout=0)
            if item is None:
                return names
            names.append(item[0])

    sub.drain = drain
    yield sub
    channel.unsubscribe(sub)


def days_from_now(days, hour=None):
    dt = local_now() + timedelta(days=days)
    if hour is not None:
        dt = dt.replace(hour=hour, minute=0, second=0)
    return dt
