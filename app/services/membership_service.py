# app/services/membership_service.py

import uuid
from typing import Iterable, List, Type

from loguru import logger
from sqlmodel import select
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.role_catalog import RoleCatalog, normalize_role_name
from app.models.enums import PRINCIPAL_PRECEDENCE, PrincipalKind
from app.models.principal import DepartmentMembership, GlobalAdmin, Learner, Staff
from app.schemas.principal import PRINCIPAL_TYPES, MembershipRecord, Principal

PRINCIPAL_TABLES: dict[PrincipalKind, Type] = {
    PrincipalKind.Learner: Learner,
    PrincipalKind.Staff: Staff,
    PrincipalKind.GlobalAdmin: GlobalAdmin,
}


# ============================================================================
# READS
# ============================================================================
async def get_principal_record(session: AsyncSession, user_id: uuid.UUID, kind: PrincipalKind):
    table = PRINCIPAL_TABLES[kind]
    result = await session.execute(select(table).where(table.id == user_id))
    return result.scalar_one_or_none()


async def get_active_memberships(
    session: AsyncSession,
    user_id: uuid.UUID,
    kind: PrincipalKind,
) -> List[MembershipRecord]:
    result = await session.execute(
        select(DepartmentMembership)
        .where(
            (DepartmentMembership.user_id == user_id) &
            (DepartmentMembership.principal_kind == kind.value) &
            (DepartmentMembership.is_active == True)  # noqa: E712
        )
        .order_by(DepartmentMembership.position.asc(), DepartmentMembership.joined_at.asc())
    )
    return [MembershipRecord.model_validate(m) for m in result.scalars().all()]


async def load_principals(session: AsyncSession, user_id: uuid.UUID) -> List[Principal]:
    """
    Every active principal record of the user, in resolution precedence
    order, each carrying its active memberships.
    """
    principals: List[Principal] = []
    for kind in PRINCIPAL_PRECEDENCE:
        record = await get_principal_record(session, user_id, kind)
        if record is None or not record.is_active:
            continue
        memberships = await get_active_memberships(session, user_id, kind)
        principals.append(
            PRINCIPAL_TYPES[kind](user_id=user_id, is_active=True, memberships=memberships)
        )
    return principals


# ============================================================================
# WRITES (used by seeding and administrative tooling)
# ============================================================================
async def ensure_principal(session: AsyncSession, user_id: uuid.UUID, kind: PrincipalKind, **fields):
    record = await get_principal_record(session, user_id, kind)
    if record is None:
        record = PRINCIPAL_TABLES[kind](id=user_id, **fields)
        session.add(record)
        await session.commit()
        await session.refresh(record)
    return record


def validate_membership_roles(
    catalog: RoleCatalog,
    kind: PrincipalKind,
    department_id: int,
    roles: Iterable[str],
) -> List[str]:
    normalized: List[str] = []
    for role in roles:
        name = normalize_role_name(role)
        if name not in normalized:
            normalized.append(name)

    if not normalized:
        raise ValueError("A department membership needs at least one role")

    for name in normalized:
        if name not in catalog:
            raise ValueError(f"Role '{name}' does not exist")
        if catalog.get_role(name).principal_kind != kind:
            raise ValueError(f"Role '{name}' cannot be held by a {kind.value} principal")

    if kind == PrincipalKind.GlobalAdmin and department_id != settings.MASTER_DEPARTMENT_ID:
        raise ValueError("Global-admin roles can only be assigned in the master department")

    return normalized


async def add_membership(
    session: AsyncSession,
    catalog: RoleCatalog,
    user_id: uuid.UUID,
    kind: PrincipalKind,
    department_id: int,
    roles: Iterable[str],
    is_primary: bool = False,
    is_active: bool = True,
) -> DepartmentMembership:
    normalized = validate_membership_roles(catalog, kind, department_id, roles)

    if await get_principal_record(session, user_id, kind) is None:
        raise ValueError(f"User has no {kind.value} record")

    count = await session.execute(
        select(func.count()).select_from(DepartmentMembership).where(
            (DepartmentMembership.user_id == user_id) &
            (DepartmentMembership.principal_kind == kind.value)
        )
    )

    membership = DepartmentMembership(
        user_id=user_id,
        principal_kind=kind.value,
        department_id=department_id,
        roles=normalized,
        is_primary=is_primary,
        is_active=is_active,
        position=count.scalar_one(),
    )
    session.add(membership)
    await session.commit()
    await session.refresh(membership)

    logger.info(f"Membership added: user={user_id} kind={kind.value} dept={department_id} roles={normalized}")
    return membership
