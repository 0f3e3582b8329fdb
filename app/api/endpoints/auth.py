# app/api/endpoints/auth.py

from fastapi import APIRouter, Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

# Schemas
from app.schemas.auth import (
    AdminSession,
    AuthContext,
    ContinueResponse,
    EscalateRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RefreshRequest,
    SessionTokens,
    SetEscalationPasswordRequest,
    SwitchDepartmentRequest,
    SwitchDepartmentResponse,
)
from app.schemas.user import UserRead

# Core
from app.core.rate_limiter import ESCALATION_RATE_LIMIT, LOGIN_RATE_LIMIT, limiter
from app.core.role_catalog import RoleCatalog
from app.core.session_store import MemorySessionStore

# Services
from app.services.auth_service import (
    ESCALATION_PASSWORD_REQUIREMENTS,
    authenticate_user,
    continue_session,
    create_login_response,
    logout,
    refresh_session,
    set_escalation_password,
)
from app.services.escalation_service import EscalationManager
from app.services.session_service import SessionAssembler

# Deps
from app.api.deps import get_current_session, get_db_session, get_role_catalog, get_session_store

router = APIRouter(prefix="/auth", tags=["Auth"])


# -------------------------------------------------------------------
# LOGIN
# -------------------------------------------------------------------
@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
    store: MemorySessionStore = Depends(get_session_store),
):
    user = await authenticate_user(session, payload.email, payload.password)
    return await create_login_response(session, catalog, store, user)


# -------------------------------------------------------------------
# REFRESH (rotates the refresh token)
# -------------------------------------------------------------------
@router.post("/refresh", response_model=SessionTokens)
async def refresh(
    payload: RefreshRequest,
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
    store: MemorySessionStore = Depends(get_session_store),
):
    return await refresh_session(session, catalog, store, payload.refresh_token)


# -------------------------------------------------------------------
# LOGOUT (ends the base session and any admin session on it)
# -------------------------------------------------------------------
@router.post("/logout", response_model=MessageResponse)
async def logout_endpoint(
    context: AuthContext = Depends(get_current_session),
    store: MemorySessionStore = Depends(get_session_store),
):
    await logout(store, context)
    return MessageResponse(detail="Logged out")


# -------------------------------------------------------------------
# CURRENT USER
# -------------------------------------------------------------------
@router.get("/me", response_model=MeResponse)
async def me(
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
    store: MemorySessionStore = Depends(get_session_store),
):
    view = await SessionAssembler(session, catalog).build_session_view(context.user)
    active, expires_at = await EscalationManager(session, catalog, store).admin_session_status(context.session_id)
    return MeResponse(
        user=UserRead.model_validate(context.user),
        view=view,
        is_admin_session_active=active,
        admin_session_expires_at=expires_at,
    )


# -------------------------------------------------------------------
# SWITCH DEPARTMENT
# -------------------------------------------------------------------
@router.post("/switch-department", response_model=SwitchDepartmentResponse)
async def switch_department(
    payload: SwitchDepartmentRequest,
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
):
    view = await SessionAssembler(session, catalog).switch_department(context.user, payload.department_id)
    return SwitchDepartmentResponse(
        current_department=view,
        last_selected_department=payload.department_id,
    )


# -------------------------------------------------------------------
# CONTINUE (recomputed claims + changes delta)
# -------------------------------------------------------------------
@router.post("/continue", response_model=ContinueResponse)
async def continue_endpoint(
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
):
    return await continue_session(session, catalog, context)


# -------------------------------------------------------------------
# ESCALATE / DE-ESCALATE
# -------------------------------------------------------------------
@router.post("/escalate", response_model=AdminSession)
@limiter.limit(ESCALATION_RATE_LIMIT)
async def escalate(
    request: Request,
    payload: EscalateRequest,
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
    store: MemorySessionStore = Depends(get_session_store),
):
    manager = EscalationManager(session, catalog, store)
    return await manager.escalate(context, payload.escalation_password)


@router.post("/deescalate", response_model=MessageResponse)
async def deescalate(
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
    store: MemorySessionStore = Depends(get_session_store),
):
    # No admin session is not an error
    await EscalationManager(session, catalog, store).deescalate(context)
    return MessageResponse(detail="Admin session ended")


# -------------------------------------------------------------------
# ESCALATION PASSWORD
# -------------------------------------------------------------------
@router.post("/set-escalation-password", response_model=MessageResponse)
async def set_escalation_password_endpoint(
    payload: SetEscalationPasswordRequest,
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
):
    await set_escalation_password(
        session,
        context.user,
        payload.current_password,
        payload.new_escalation_password,
    )
    return MessageResponse(detail="Escalation password updated")


@router.get("/escalation-password-requirements")
async def escalation_password_requirements():
    return {"requirements": ESCALATION_PASSWORD_REQUIREMENTS}
