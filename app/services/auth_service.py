# app/services/auth_service.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
import re
import uuid
from datetime import timedelta
from typing import List, Optional

import jwt
from loguru import logger

from app.core.config import settings
from app.core.exceptions import (
    EscalationIneligible,
    InactiveAccount,
    InvalidCredentials,
    InvalidToken,
    WeakEscalationPassword,
)
from app.core.role_catalog import RoleCatalog
from app.core.security import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    new_token_id,
    verify_password,
)
from app.core.session_store import MemorySessionStore
from app.models.enums import PrincipalKind
from app.models.user import User, utcnow
from app.schemas.auth import AuthContext, ContinueResponse, LoginResponse, SessionTokens
from app.schemas.session import SessionView
from app.schemas.user import UserRead
from app.services.membership_service import get_principal_record
from app.services.session_service import SessionAssembler, claims_from_view, diff_claims


# ============================================================================
# FETCH USER BY EMAIL
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


# ============================================================================
# FETCH USER BY ID
# ============================================================================
async def get_user_by_id(session: AsyncSession, user_id: uuid.UUID | str) -> User | None:
    if isinstance(user_id, str):
        try:
            user_id = uuid.UUID(user_id)
        except ValueError:
            return None
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


# ============================================================================
# CREATE USER
# ============================================================================
async def create_user(
    session: AsyncSession,
    email: str,
    password: str,
    first_name: str,
    last_name: str = "",
    is_active: bool = True,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email.strip().lower(),
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password),
        is_active=is_active,
    )

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
        return user

    except IntegrityError:
        await session.rollback()
        raise ValueError("User with this email already exists")


# ============================================================================
# AUTHENTICATE
# ============================================================================
async def authenticate_user(session: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(session, email)

    # Same error for unknown email and wrong password
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Rejected login for '{email}'")
        raise InvalidCredentials()

    if not user.is_active:
        logger.warning(f"Rejected login for inactive account {user.id}")
        raise InactiveAccount()

    return user


# ============================================================================
# TOKEN ISSUANCE
# ============================================================================
def _access_token_lifetime() -> int:
    return settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def _refresh_token_lifetime() -> int:
    return settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60


def issue_access_token(user: User, session_id: str, view: SessionView) -> str:
    return create_access_token(
        subject=str(user.id),
        session_id=session_id,
        data=claims_from_view(view),
    )


async def _rotate_refresh_token(store: MemorySessionStore, user: User, session_id: str) -> str:
    refresh_jti = new_token_id()
    await store.create_session(
        session_id,
        {"user_id": str(user.id), "refresh_jti": refresh_jti},
        _refresh_token_lifetime(),
    )
    return create_refresh_token(
        subject=str(user.id),
        session_id=session_id,
        token_id=refresh_jti,
        expires_delta=timedelta(seconds=_refresh_token_lifetime()),
    )


def _sync_user_profile(user: User, view: SessionView) -> None:
    # user_types and the dashboard always follow the principal records
    user.user_types = [k.value for k in view.user_types]
    user.default_dashboard = view.default_dashboard.value

    if user.last_selected_department_id is None and view.department_memberships:
        primary = next((d for d in view.department_memberships if d.is_primary), None)
        chosen = primary or view.department_memberships[0]
        user.last_selected_department_id = chosen.department_id
        view.last_selected_department = chosen.department_id


# ============================================================================
# LOGIN
# ============================================================================
async def create_login_response(
    session: AsyncSession,
    catalog: RoleCatalog,
    store: MemorySessionStore,
    user: User,
) -> LoginResponse:
    assembler = SessionAssembler(session, catalog)
    view = await assembler.build_session_view(user)

    _sync_user_profile(user, view)
    user.last_login = utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)

    session_id = new_token_id()
    refresh_token = await _rotate_refresh_token(store, user, session_id)
    access_token = issue_access_token(user, session_id, view)

    logger.info(
        f"Login: user={user.id} types={user.user_types} departments={view.department_ids()}"
    )

    return LoginResponse(
        user=UserRead.model_validate(user),
        session=SessionTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=_access_token_lifetime(),
        ),
        view=view,
    )


# ============================================================================
# CONTINUE (recompute claims without re-authenticating)
# ============================================================================
async def continue_session(
    session: AsyncSession,
    catalog: RoleCatalog,
    context: AuthContext,
) -> ContinueResponse:
    user = context.user
    assembler = SessionAssembler(session, catalog)
    view = await assembler.build_session_view(user)
    changes = diff_claims(context.claims, view)

    if user.user_types != [k.value for k in view.user_types]:
        _sync_user_profile(user, view)
        session.add(user)
        await session.commit()
        await session.refresh(user)

    access_token = issue_access_token(user, context.session_id, view)

    if changes.is_empty():
        logger.info(f"Session continued: user={user.id} (no changes)")
    else:
        logger.info(f"Session continued: user={user.id} changes={changes.model_dump(exclude_defaults=True)}")

    return ContinueResponse(
        session=SessionTokens(access_token=access_token, expires_in=_access_token_lifetime()),
        view=view,
        changes=changes,
    )


# ============================================================================
# REFRESH (rotating refresh tokens)
# ============================================================================
async def refresh_session(
    session: AsyncSession,
    catalog: RoleCatalog,
    store: MemorySessionStore,
    refresh_token: str,
) -> SessionTokens:
    try:
        claims = decode_token(refresh_token, TokenType.Refresh)
    except jwt.InvalidTokenError:
        raise InvalidToken()

    session_id = claims["sid"]
    record = await store.get_session(session_id)
    if record is None:
        raise InvalidToken("Session has ended")

    if record.get("refresh_jti") != claims.get("jti"):
        # An older refresh token was replayed: end the whole session
        logger.warning(f"Refresh token reuse detected for session {session_id}; revoking")
        await store.revoke_session(session_id)
        raise InvalidToken()

    user = await get_user_by_id(session, claims["sub"])
    if user is None:
        raise InvalidToken()
    if not user.is_active:
        await store.revoke_session(session_id)
        raise InactiveAccount()

    view = await SessionAssembler(session, catalog).build_session_view(user)
    new_refresh = await _rotate_refresh_token(store, user, session_id)

    return SessionTokens(
        access_token=issue_access_token(user, session_id, view),
        refresh_token=new_refresh,
        expires_in=_access_token_lifetime(),
    )


# ============================================================================
# LOGOUT
# ============================================================================
async def logout(store: MemorySessionStore, context: AuthContext) -> None:
    await store.revoke_session(context.session_id)
    logger.info(f"Logout: user={context.user.id} session={context.session_id}")


# ============================================================================
# ESCALATION PASSWORD MANAGEMENT
# ============================================================================
ESCALATION_PASSWORD_MIN_LENGTH = 8

ESCALATION_PASSWORD_REQUIREMENTS = [
    f"At least {ESCALATION_PASSWORD_MIN_LENGTH} characters",
    "At least one uppercase letter",
    "At least one lowercase letter",
    "At least one digit",
    "Must differ from the login password",
]


def check_escalation_password(candidate: str, login_password_hash: Optional[str] = None) -> List[str]:
    """Returns the requirements the candidate fails; empty when acceptable."""
    failures: List[str] = []
    if len(candidate) < ESCALATION_PASSWORD_MIN_LENGTH:
        failures.append(ESCALATION_PASSWORD_REQUIREMENTS[0])
    if not re.search(r"[A-Z]", candidate):
        failures.append(ESCALATION_PASSWORD_REQUIREMENTS[1])
    if not re.search(r"[a-z]", candidate):
        failures.append(ESCALATION_PASSWORD_REQUIREMENTS[2])
    if not re.search(r"\d", candidate):
        failures.append(ESCALATION_PASSWORD_REQUIREMENTS[3])
    if login_password_hash and verify_password(candidate, login_password_hash):
        failures.append(ESCALATION_PASSWORD_REQUIREMENTS[4])
    return failures


async def set_escalation_password(
    session: AsyncSession,
    user: User,
    current_password: str,
    new_escalation_password: str,
) -> None:
    admin = await get_principal_record(session, user.id, PrincipalKind.GlobalAdmin)
    if admin is None or not admin.is_active:
        raise EscalationIneligible()

    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentials()

    failures = check_escalation_password(new_escalation_password, user.password_hash)
    if failures:
        raise WeakEscalationPassword("; ".join(failures))

    admin.escalation_password_hash = hash_password(new_escalation_password)
    session.add(admin)
    await session.commit()

    logger.info(f"Escalation password updated for user {user.id}")
