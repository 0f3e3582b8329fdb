# app/api/endpoints/roles.py

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_session, get_db_session, get_role_catalog, require_system_admin
from app.core.role_catalog import RoleCatalog
from app.schemas.auth import AuthContext
from app.schemas.role import CatalogReloadResponse, RoleRead
from app.schemas.session import DepartmentView, SessionView
from app.services.session_service import SessionAssembler

router = APIRouter(prefix="/roles", tags=["Roles"])


# 1️⃣ Resolved session view of the caller
@router.get("/me", response_model=SessionView)
async def my_roles(
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
):
    return await SessionAssembler(session, catalog).build_session_view(context.user)


# 2️⃣ Resolved view of one department (direct or cascaded); no side effects
@router.get("/me/department/{department_id}", response_model=DepartmentView)
async def my_department_roles(
    department_id: int,
    context: AuthContext = Depends(get_current_session),
    session: AsyncSession = Depends(get_db_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
):
    return await SessionAssembler(session, catalog).resolve_department_view(context.user, department_id)


# 3️⃣ Catalog listing
@router.get("", response_model=List[RoleRead])
async def list_roles(
    _: AuthContext = Depends(get_current_session),
    catalog: RoleCatalog = Depends(get_role_catalog),
):
    return catalog.all()


# 4️⃣ Reload the catalog from the database (escalated system admins only)
@router.post("/reload", response_model=CatalogReloadResponse)
async def reload_roles(
    request: Request,
    _: dict = Depends(require_system_admin),
    session: AsyncSession = Depends(get_db_session),
):
    count = await request.app.state.role_catalog.reload(session)
    return CatalogReloadResponse(detail="Role catalog reloaded", role_count=count)
