# app/api/endpoints/departments.py

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session, require_access_right, require_system_admin
from app.schemas.auth import AuthContext
from app.schemas.department import DepartmentCreate, DepartmentRead
from app.services.department_service import create_department

router = APIRouter(prefix="/departments", tags=["Departments"])


# =================================================================
# ADMIN: CREATE DEPARTMENT
# escalated system admin whose session also carries the settings right
# =================================================================
@router.post("", response_model=DepartmentRead, status_code=201)
async def create_department_endpoint(
    payload: DepartmentCreate,
    _admin: dict = Depends(require_system_admin),
    _: AuthContext = Depends(require_access_right("system:department-settings:manage")),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await create_department(
            session,
            name=payload.name,
            code=payload.code.upper() if payload.code else None,
            parent_id=payload.parent_id,
            require_explicit_membership=payload.require_explicit_membership,
            is_active=payload.is_active,
            is_visible=payload.is_visible,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
