from datetime import timedelta

import jwt
import pytest

from app.core.security import (
    TokenType,
    create_access_token,
    create_admin_token,
    create_refresh_token,
    decode_admin_token,
    decode_token,
    hash_password,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = hash_password("Login-pass1")

    assert hashed != "Login-pass1"
    assert verify_password("Login-pass1", hashed)
    assert not verify_password("login-pass1", hashed)
    assert not verify_password("Login-pass1", None)


def test_long_passwords_are_fully_significant():
    base = "x" * 100
    hashed = hash_password(base + "a")

    assert verify_password(base + "a", hashed)
    assert not verify_password(base + "b", hashed)


def test_access_token_claims():
    token = create_access_token("user-1", "sid-1", data={"roles": ["instructor"]})
    claims = decode_token(token)

    assert claims["sub"] == "user-1"
    assert claims["sid"] == "sid-1"
    assert claims["type"] == "access"
    assert claims["roles"] == ["instructor"]


def test_token_types_are_not_interchangeable():
    refresh = create_refresh_token("user-1", "sid-1", "jti-1")

    with pytest.raises(jwt.InvalidTokenError):
        decode_token(refresh)
    assert decode_token(refresh, TokenType.Refresh)["jti"] == "jti-1"


def test_admin_tokens_use_their_own_secret():
    admin = create_admin_token("user-1", "sid-1", "jti-1", ["system-admin"], ["system:*"])

    assert decode_admin_token(admin)["roles"] == ["system-admin"]
    # Signed with the admin secret, so the session-token path rejects it
    with pytest.raises(jwt.InvalidTokenError):
        decode_token(admin)


def test_expired_token():
    token = create_access_token("user-1", "sid-1", expires_delta=timedelta(seconds=-5))

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_token(token)
