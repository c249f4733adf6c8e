from __future__ import annotations

import logging

from flask import current_app

from ..exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..models import Permission, Role, User, db
from ..models.store import atomic
from ..utils.constants import ROLE_GRANTS
from ..utils.security import check_hash, create_access_token, generate_hash

logger = logging.getLogger(__name__)


class AuthService:
    """Login, staff accounts and the role catalog."""

    @staticmethod
    def login(email: str, password: str) -> dict:
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required")
        user = db.session.scalar(db.select(User).filter_by(email=email))
        if user is None or not check_hash(password, user.password_hash):
            logger.info("failed login for %s", email)
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AuthenticationError("Account is disabled")

        token = create_access_token(
            user.id,
            current_app.config["JWT_SECRET"],
            current_app.config["ACCESS_TOKEN_EXPIRE_MINUTES"],
        )
        return {"token": token, "user": user.to_dict()}

    @staticmethod
    def create_user(email: str, password: str, full_name: str, role_name: str, phone: str | None = None) -> User:
        email = (email or "").strip().lower()
        if not email or not password or not (full_name or "").strip():
            raise ValidationError("email, password and full_name are required")
        role = db.session.scalar(db.select(Role).filter_by(name=role_name))
        if role is None:
            raise NotFoundError(f"Role '{role_name}' not found")
        with atomic() as session:
            if db.session.scalar(db.select(User.id).filter_by(email=email)) is not None:
                raise ConflictError("Email already registered")
            user = User(
                email=email,
                full_name=full_name.strip(),
                phone=phone,
                password_hash=generate_hash(password),
                role=role,
            )
            session.add(user)
        return user

    @staticmethod
    def seed_roles() -> dict[str, Role]:
        """Create missing permissions and roles and sync role grants. Safe to rerun."""
        with atomic() as session:
            perms = {(p.resource, p.action): p for p in db.session.scalars(db.select(Permission))}
            roles = {r.name: r for r in db.session.scalars(db.select(Role))}

            for name, grants in ROLE_GRANTS.items():
                role = roles.get(name)
                if role is None:
                    role = roles[name] = Role(name=name)
                    session.add(role)
                wanted = []
                for resource, actions in sorted(grants.items()):
                    for action in sorted(actions):
                        key = (resource, action)
                        if key not in perms:
                            perms[key] = Permission(resource=resource, action=action)
                            session.add(perms[key])
                        wanted.append(perms[key])
                role.permissions = wanted

        logger.info("role catalog ready: %s", ", ".join(sorted(roles)))
        return roles
