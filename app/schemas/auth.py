from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import List, Optional

from app.models.user import User
from app.schemas.session import DepartmentView, SessionChanges, SessionView
from app.schemas.user import UserRead


# -------------------------------------------------------------------
# LOGIN REQUEST
# -------------------------------------------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class SwitchDepartmentRequest(BaseModel):
    department_id: int


class EscalateRequest(BaseModel):
    escalation_password: str


class SetEscalationPasswordRequest(BaseModel):
    current_password: str
    new_escalation_password: str


# -------------------------------------------------------------------
# TOKEN RESPONSE
# -------------------------------------------------------------------
class SessionTokens(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None


# -------------------------------------------------------------------
# LOGIN RESPONSE (tokens + resolved session view)
# -------------------------------------------------------------------
class LoginResponse(BaseModel):
    user: UserRead
    session: SessionTokens
    view: SessionView


class ContinueResponse(BaseModel):
    session: SessionTokens
    view: SessionView
    changes: SessionChanges


class SwitchDepartmentResponse(BaseModel):
    current_department: DepartmentView
    last_selected_department: int


class MeResponse(BaseModel):
    user: UserRead
    view: SessionView
    is_admin_session_active: bool = False
    admin_session_expires_at: Optional[datetime] = None


# -------------------------------------------------------------------
# ADMIN (ESCALATED) SESSION
# -------------------------------------------------------------------
class AdminSession(BaseModel):
    admin_token: str
    expires_in: int
    expires_at: datetime
    admin_roles: List[str]
    admin_access_rights: List[str]


class MessageResponse(BaseModel):
    detail: str


# -------------------------------------------------------------------
# AUTHENTICATED REQUEST CONTEXT (built by deps.get_current_session)
# -------------------------------------------------------------------
class AuthContext(BaseModel):
    user: User
    session_id: str
    claims: dict

    class Config:
        arbitrary_types_allowed = True
