"""
Password hashing and bearer token helpers.
"""
from datetime import datetime, timedelta, timezone

import jwt

from backoffice.utils.security import (
    check_hash,
    create_access_token,
    decode_access_token,
    generate_hash,
)


def test_hash_roundtrip():
    h = generate_hash("Secret123")
    assert h != "Secret123"
    assert check_hash("Secret123", h)
    assert not check_hash("secret123", h)


def test_check_hash_tolerates_garbage():
    assert not check_hash("x", "not-a-hash")


def test_token_carries_user_id():
    token = create_access_token(42, "k", 5)
    assert decode_access_token(token, "k")["sub"] == "42"


def test_token_wrong_secret_or_expired():
    assert decode_access_token(create_access_token(1, "k", 5), "other") is None
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    expired = jwt.encode({"sub": "1", "exp": past}, "k", algorithm="HS256")
    assert decode_access_token(expired, "k") is None
