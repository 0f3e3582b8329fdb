from sqlmodel import select
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.config import settings
from app.core.constants import ROLE_DEFINITIONS_DATA, ROLE_SYSTEM_ADMIN
from app.core.database import AsyncSessionLocal, IS_SQLITE
from app.core.role_catalog import RoleCatalog
from app.core.security import hash_password
from app.models.department import Department
from app.models.enums import PrincipalKind
from app.models.role import RoleDefinition
from app.services.auth_service import get_user_by_email, create_user
from app.services.membership_service import add_membership, ensure_principal, get_active_memberships


# ----------------------------------------------------------------
# SEEDING FUNCTIONS
# ----------------------------------------------------------------

async def seed_all(catalog: RoleCatalog):
    """Master function to run all seeding logic."""
    async with AsyncSessionLocal() as session:
        try:
            await seed_master_department(session)
            await seed_role_definitions(session)
            await session.commit()

            await catalog.reload(session)
            await seed_super_admin(session, catalog)
            logger.success("Seeding complete.")
        except Exception as e:
            logger.error(f"Seeding failed: {e}")
            await session.rollback()


async def seed_master_department(session: AsyncSession):
    """The reserved department holding system-wide (global-admin) roles."""
    master = await session.get(Department, settings.MASTER_DEPARTMENT_ID)
    if master is None:
        logger.info(f"Creating master department: {settings.MASTER_DEPARTMENT_NAME}")
        session.add(Department(
            id=settings.MASTER_DEPARTMENT_ID,
            name=settings.MASTER_DEPARTMENT_NAME,
            code="MASTER",
            require_explicit_membership=True,
            is_visible=False,
        ))
        await session.flush()
        if not IS_SQLITE:
            # The id was set explicitly; move the serial past it
            await session.execute(text(
                "SELECT setval(pg_get_serial_sequence('departments', 'id'), "
                "(SELECT MAX(id) FROM departments))"
            ))
    elif not master.require_explicit_membership:
        logger.warning("Master department did not require explicit membership. Fixing.")
        master.require_explicit_membership = True
        session.add(master)
    await session.flush()


async def seed_role_definitions(session: AsyncSession):
    for data in ROLE_DEFINITIONS_DATA:
        kind = data["principal_kind"].value
        existing = (await session.execute(
            select(RoleDefinition).where(RoleDefinition.name == data["name"])
        )).scalar_one_or_none()

        if existing is None:
            logger.info(f"Creating role: {data['name']} ({kind})")
            session.add(RoleDefinition(
                name=data["name"],
                principal_kind=kind,
                display_name=data["display_name"],
                description=data["description"],
                access_rights=list(data["access_rights"]),
            ))
            continue

        if (
            existing.principal_kind != kind
            or existing.display_name != data["display_name"]
            or existing.description != data["description"]
            or sorted(existing.access_rights) != sorted(data["access_rights"])
        ):
            logger.info(f"Updating role: {data['name']}")
            existing.principal_kind = kind
            existing.display_name = data["display_name"]
            existing.description = data["description"]
            existing.access_rights = list(data["access_rights"])
            session.add(existing)
    await session.flush()


async def seed_super_admin(session: AsyncSession, catalog: RoleCatalog):
    if not settings.SUPER_ADMIN_EMAIL or not settings.SUPER_ADMIN_PASSWORD:
        logger.warning("Missing Super Admin credentials in settings.")
        return

    user = await get_user_by_email(session, settings.SUPER_ADMIN_EMAIL)
    if user is None:
        logger.info(f"Seeding Super Admin: {settings.SUPER_ADMIN_EMAIL}")
        user = await create_user(
            session=session,
            email=settings.SUPER_ADMIN_EMAIL,
            password=settings.SUPER_ADMIN_PASSWORD,
            first_name=settings.SUPER_ADMIN_NAME or "Super Admin",
        )

    escalation_hash = None
    if settings.SUPER_ADMIN_ESCALATION_PASSWORD:
        escalation_hash = hash_password(settings.SUPER_ADMIN_ESCALATION_PASSWORD)
    await ensure_principal(
        session, user.id, PrincipalKind.GlobalAdmin, escalation_password_hash=escalation_hash
    )

    memberships = await get_active_memberships(session, user.id, PrincipalKind.GlobalAdmin)
    if not memberships:
        await add_membership(
            session,
            catalog,
            user.id,
            PrincipalKind.GlobalAdmin,
            settings.MASTER_DEPARTMENT_ID,
            [ROLE_SYSTEM_ADMIN],
            is_primary=True,
        )
        logger.success("Super Admin created successfully.")
    else:
        logger.info("Super Admin already exists. Skipping.")
