"""
Login, account creation and the idempotent role catalog.
"""
import pytest

from conftest import PASSWORD
from backoffice.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from backoffice.models import Permission, Role, db
from backoffice.models.store import atomic
from backoffice.services.auth_service import AuthService
from backoffice.utils.constants import ROLE_GRANTS


def test_seed_roles_is_idempotent(app):
    before = db.session.scalar(db.select(db.func.count(Permission.id)))
    AuthService.seed_roles()
    assert db.session.scalar(db.select(db.func.count(Permission.id))) == before
    assert {r.name for r in db.session.scalars(db.select(Role))} == set(ROLE_GRANTS)


def test_role_grants(users):
    assert users["Admin"].can("users", "delete")
    assert not users["Manager"].can("users", "create")
    assert users["Warehouse"].can("bookings", "update")
    assert not users["Mechanic"].can("bookings", "read")
    assert all(u.can("notifications", "read") for u in users.values())


def test_role_grant_sets_are_immutable():
    for grants in ROLE_GRANTS.values():
        for actions in grants.values():
            assert isinstance(actions, frozenset)
    with pytest.raises(AttributeError):
        ROLE_GRANTS["Warehouse"]["cars"].add("approve")
    assert "approve" not in ROLE_GRANTS["Admin"]["cars"]


def test_login(users):
    result = AuthService.login("ADMIN@example.com", PASSWORD)
    assert result["token"]
    assert result["user"]["email"] == "admin@example.com"
    with pytest.raises(AuthenticationError):
        AuthService.login("admin@example.com", "wrong")
    with pytest.raises(AuthenticationError):
        AuthService.login("ghost@example.com", PASSWORD)
    with pytest.raises(ValidationError):
        AuthService.login("", "")


def test_inactive_user_cannot_login(users):
    with atomic():
        users["Mechanic"].is_active = False
    with pytest.raises(AuthenticationError):
        AuthService.login("mechanic@example.com", PASSWORD)


def test_create_user_rules(users):
    with pytest.raises(ConflictError):
        AuthService.create_user("admin@example.com", "x", "Dup", "Admin")
    with pytest.raises(NotFoundError):
        AuthService.create_user("new@example.com", "x", "New", "Pilot")
