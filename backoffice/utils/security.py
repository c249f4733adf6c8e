from datetime import datetime, timedelta, timezone

import jwt
from werkzeug.security import generate_password_hash, check_password_hash

JWT_ALGORITHM = "HS256"


def generate_hash(password: str) -> str:
    return generate_password_hash(password)


def check_hash(password: str, hashed: str) -> bool:
    try:
        return check_password_hash(hashed, password)
    except (TypeError, ValueError):
        return False


def create_access_token(user_id: int, secret: str, expire_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=expire_minutes),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str) -> dict | None:
    """Return the token payload, or None when the token is invalid or expired."""
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
