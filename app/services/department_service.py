# app/services/department_service.py

from typing import Dict, List, Optional

from loguru import logger
from sqlmodel import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.department import Department


class DepartmentStore:
    """
    Read access to the department tree for one request.

    Departments are memoised for the lifetime of the store, which gives every
    resolution a consistent snapshot and keeps ancestry walks to one query per
    node. Create a new store per request; never share one across requests.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._cache: Dict[int, Optional[Department]] = {}
        self._children: Dict[int, List[Department]] = {}

    async def get_department(self, department_id: int) -> Optional[Department]:
        if department_id not in self._cache:
            result = await self.session.execute(
                select(Department).where(Department.id == department_id)
            )
            self._cache[department_id] = result.scalar_one_or_none()
        return self._cache[department_id]

    async def get_parent(self, department_id: int) -> Optional[Department]:
        department = await self.get_department(department_id)
        if not department or department.parent_id is None:
            return None

        parent = await self.get_department(department.parent_id)
        if parent is None:
            logger.warning(f"Department {department_id} references missing parent {department.parent_id}")
        return parent

    async def list_children(self, department_id: int) -> List[Department]:
        if department_id not in self._children:
            result = await self.session.execute(
                select(Department)
                .where(Department.parent_id == department_id)
                .order_by(Department.name.asc(), Department.id.asc())
            )
            children = list(result.scalars().all())
            for child in children:
                self._cache.setdefault(child.id, child)
            self._children[department_id] = children
        return self._children[department_id]


async def get_department_by_id(session: AsyncSession, department_id: int) -> Department | None:
    result = await session.execute(select(Department).where(Department.id == department_id))
    return result.scalar_one_or_none()


async def create_department(
    session: AsyncSession,
    name: str,
    parent_id: int | None = None,
    code: str | None = None,
    require_explicit_membership: bool = False,
    is_active: bool = True,
    is_visible: bool = True,
    department_id: int | None = None,
) -> Department:
    if parent_id is not None and await get_department_by_id(session, parent_id) is None:
        raise ValueError(f"Parent department {parent_id} does not exist")

    department = Department(
        id=department_id,
        name=name,
        code=code,
        parent_id=parent_id,
        require_explicit_membership=require_explicit_membership,
        is_active=is_active,
        is_visible=is_visible,
    )
    session.add(department)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValueError(f"Department code '{code}' already exists")

    await session.refresh(department)
    logger.info(f"Department created: {department.id} '{department.name}' (parent={parent_id})")
    return department
