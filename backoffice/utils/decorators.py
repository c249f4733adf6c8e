import logging
from functools import wraps

from flask import current_app, g, request

from ..exceptions import AuthenticationError, AuthorizationError
from ..models import User, db
from .security import decode_access_token

logger = logging.getLogger(__name__)


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    # EventSource clients cannot set headers
    return request.args.get("access_token") or None


def current_user() -> User:
    return g.current_user


def token_required(fn):
    """Resolve the bearer token to an active user in ``g.current_user``."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise AuthenticationError()
        payload = decode_access_token(token, current_app.config["JWT_SECRET"])
        if not payload:
            raise AuthenticationError("Invalid token")
        try:
            user = db.session.get(User, int(payload.get("sub")))
        except (TypeError, ValueError):
            user = None
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        g.current_user = user
        return fn(*args, **kwargs)

    return wrapper


def permission_required(resource: str, action: str):
    """Allow the call only if the user's role grants (resource, action)."""

    def deco(fn):
        @wraps(fn)
        @token_required
        def wrapper(*args, **kwargs):
            if not g.current_user.can(resource, action):
                logger.info(
                    "permission denied user=%s resource=%s action=%s",
                    g.current_user.id, resource, action,
                )
                raise AuthorizationError()
            return fn(*args, **kwargs)

        return wrapper

    return deco


def role_required(*roles):
    def deco(fn):
        @wraps(fn)
        @token_required
        def wrapper(*args, **kwargs):
            if g.current_user.role.name not in roles:
                raise AuthorizationError()
            return fn(*args, **kwargs)

        return wrapper

    return deco
