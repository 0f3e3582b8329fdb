# app/core/exceptions.py

from typing import Dict, Optional
from fastapi import HTTPException, status


class AuthError(HTTPException):
    """
    Base for every failure the role engine surfaces to callers.

    Rendered by FastAPI as {"detail": {"code": ..., "message": ...}}.
    Messages never confirm or deny account details.
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    message: str = "Bad request"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.message
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": self.message},
            headers=headers,
        )


# ------------------------------------------------------------
# Authentication
# ------------------------------------------------------------
class InvalidCredentials(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class InvalidToken(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Invalid or expired token"


class InactiveAccount(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCOUNT_INACTIVE"
    message = "Account is inactive"


# ------------------------------------------------------------
# Department resolution
# ------------------------------------------------------------
class NotAMember(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "NOT_A_MEMBER"
    message = "You are not a member of this department"


class DepartmentNotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "DEPARTMENT_NOT_FOUND"
    message = "Department not found or is not accessible"


class DepartmentInactive(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "DEPARTMENT_INACTIVE"
    message = "Department is not active"


class UnknownRole(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "UNKNOWN_ROLE"
    message = "Role configuration is inconsistent"

    def __init__(self, role_name: str, message: Optional[str] = None):
        self.role_name = role_name
        super().__init__(message)


class DepartmentHierarchyError(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DEPARTMENT_HIERARCHY_CORRUPT"
    message = "Department hierarchy could not be resolved"


# ------------------------------------------------------------
# Access rights
# ------------------------------------------------------------
class InsufficientAccessRight(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "INSUFFICIENT_ACCESS_RIGHT"
    message = "You do not have the access right required for this action"


# ------------------------------------------------------------
# Escalation
# ------------------------------------------------------------
class InvalidEscalationPassword(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_ESCALATION_PASSWORD"
    message = "Invalid escalation credentials"


class EscalationIneligible(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ESCALATION_INELIGIBLE"
    message = "Admin escalation is not available for this account"


class WeakEscalationPassword(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "WEAK_ESCALATION_PASSWORD"
    message = "Escalation password does not meet the requirements"


class AdminTokenRequired(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "ADMIN_TOKEN_REQUIRED"
    message = "A valid admin token is required"


class AdminSessionStale(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "ADMIN_SESSION_STALE"
    message = "Admin session has expired or been de-escalated"


class InsufficientAdminRole(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "INSUFFICIENT_ADMIN_ROLE"
    message = "Admin role is insufficient for this action"
