# app/core/security.py
import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union

import jwt  # PyJWT
from passlib.context import CryptContext
from app.core.config import settings

# 1. Configuration
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.PASSWORD_HASH_ROUNDS,
)
ALGORITHM = "HS256"


class TokenType(str, Enum):
    Access = "access"
    Refresh = "refresh"
    Admin = "admin"


# 2. Advanced Password Handling
def _pre_hash_password(password: str) -> str:
    """
    Handle the 'bcrypt 72-byte limit' safely.
    If a password is longer than 72 bytes, we hash it first using SHA-256.
    This ensures the entire password matters, regardless of length.
    """
    if len(password.encode('utf-8')) <= 72:
        return password

    # SHA-256 hexdigest is 64 chars, which fits safely inside 72 bytes.
    return hashlib.sha256(password.encode('utf-8')).hexdigest()

def hash_password(password: str) -> str:
    safe_password = _pre_hash_password(password)
    return pwd_context.hash(safe_password)

def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    safe_password = _pre_hash_password(plain_password)
    return pwd_context.verify(safe_password, hashed_password)


# 3. Token Creation
def new_token_id() -> str:
    return uuid.uuid4().hex


def _encode(
    subject: Union[str, Any],
    token_type: TokenType,
    expires_delta: timedelta,
    secret: str,
    data: Optional[dict] = None,
) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(subject),
        "type": token_type.value,
        "exp": now + expires_delta,
        "iat": now,
        "nbf": now,
    }
    if data:
        to_encode.update(data)

    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def create_access_token(
    subject: Union[str, Any],
    session_id: str,
    expires_delta: Optional[timedelta] = None,
    data: Optional[dict] = None
) -> str:
    """Session token. `data` carries the resolved claims snapshot."""
    claims = {"sid": session_id, "jti": new_token_id()}
    if data:
        claims.update(data)

    return _encode(
        subject,
        TokenType.Access,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        settings.SECRET_KEY,
        claims,
    )


def create_refresh_token(
    subject: Union[str, Any],
    session_id: str,
    token_id: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    return _encode(
        subject,
        TokenType.Refresh,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        settings.SECRET_KEY,
        {"sid": session_id, "jti": token_id},
    )


def create_admin_token(
    subject: Union[str, Any],
    session_id: str,
    token_id: str,
    roles: list[str],
    access_rights: list[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    return _encode(
        subject,
        TokenType.Admin,
        expires_delta or timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES),
        settings.admin_token_secret,
        {
            "sid": session_id,
            "jti": token_id,
            "roles": roles,
            "access_rights": access_rights,
        },
    )


# 4. Safer Decoding
def decode_token(token: str, expected_type: TokenType = TokenType.Access) -> dict:
    """
    Decode a session or refresh token.

    Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError; a token of the
    wrong type is reported as invalid.
    """
    secret = settings.admin_token_secret if expected_type == TokenType.Admin else settings.SECRET_KEY
    payload = jwt.decode(
        token,
        secret,
        algorithms=[ALGORITHM],
        options={"verify_exp": True, "require": ["exp", "sub", "type", "sid"]},
    )
    if payload.get("type") != expected_type.value:
        raise jwt.InvalidTokenError(f"Expected a {expected_type.value} token")
    return payload


def decode_admin_token(token: str) -> dict:
    return decode_token(token, TokenType.Admin)
