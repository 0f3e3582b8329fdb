# app/api/deps.py

from typing import AsyncGenerator, Optional

import jwt
from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.exceptions import InactiveAccount, InsufficientAccessRight, InvalidToken
from app.core.role_catalog import RoleCatalog
from app.core.security import decode_token
from app.core.session_store import MemorySessionStore
from app.models.user import User
from app.schemas.auth import AuthContext
from app.services.access_rights_service import has_all_access_rights
from app.services.auth_service import get_user_by_id
from app.services.escalation_service import EscalationManager


# ------------------------------------------------------------
# HTTP Bearer Authentication
# ------------------------------------------------------------
# auto_error=False so a missing header surfaces as our own 401 payload
bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


# ------------------------------------------------------------
# Process-wide collaborators (attached to app.state at startup)
# ------------------------------------------------------------
def get_role_catalog(request: Request) -> RoleCatalog:
    return request.app.state.role_catalog


def get_session_store(request: Request) -> MemorySessionStore:
    return request.app.state.session_store


# ------------------------------------------------------------
# Current base session from the bearer token
# ------------------------------------------------------------
async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
    store: MemorySessionStore = Depends(get_session_store),
) -> AuthContext:

    if credentials is None:
        raise InvalidToken("Not authenticated")

    try:
        claims = decode_token(credentials.credentials)
    except jwt.InvalidTokenError:
        raise InvalidToken()

    # Logged-out sessions are rejected even if the token has not expired
    if not await store.session_exists(claims["sid"]):
        raise InvalidToken("Session has ended")

    user = await get_user_by_id(session, claims["sub"])
    if not user:
        raise InvalidToken()

    if not user.is_active:
        raise InactiveAccount()

    return AuthContext(user=user, session_id=claims["sid"], claims=claims)


async def get_current_user(context: AuthContext = Depends(get_current_session)) -> User:
    return context.user


# ------------------------------------------------------------
# Access-right gate (wildcard aware, over the token's rights)
# ------------------------------------------------------------
def require_access_right(*rights: str):
    """
    Enforces that the session token carries every listed access right.
    'content:*' in the token satisfies 'content:courses:read'.
    """

    async def checker(context: AuthContext = Depends(get_current_session)) -> AuthContext:
        held = context.claims.get("access_rights") or []
        if not has_all_access_rights(held, rights):
            raise InsufficientAccessRight()
        return context

    return checker


# ------------------------------------------------------------
# Admin-gated endpoints: base session + X-Admin-Token
# ------------------------------------------------------------
def require_admin_role(*roles: str):
    """
    Requires a live base session, a valid admin token bound to it, and at
    least one of `roles` among the admin token's roles. Returns the admin
    token claims.
    """

    async def checker(
        context: AuthContext = Depends(get_current_session),
        admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
        session: AsyncSession = Depends(get_db_session),
        catalog: RoleCatalog = Depends(get_role_catalog),
        store: MemorySessionStore = Depends(get_session_store),
    ) -> dict:
        manager = EscalationManager(session, catalog, store)
        claims = await manager.validate_admin_token(context, admin_token)
        manager.require_roles(claims, *roles)
        return claims

    return checker


require_system_admin = require_admin_role("system-admin")
