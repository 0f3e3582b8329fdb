# app/services/session_service.py

from typing import Iterable, List, Optional, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DepartmentInactive, DepartmentNotFound
from app.core.role_catalog import RoleCatalog
from app.models.enums import Dashboard, PrincipalKind
from app.models.user import User
from app.schemas.principal import Principal
from app.schemas.session import DepartmentView, SessionChanges, SessionView
from app.services.access_rights_service import AccessRightAggregator
from app.services.department_service import DepartmentStore
from app.services.membership_service import load_principals
from app.services.role_resolver import RoleResolver


# ============================================================================
# DASHBOARD / ELIGIBILITY
# ============================================================================
def select_default_dashboard(kinds: Iterable[PrincipalKind]) -> Dashboard:
    """Staff wins whenever present; a global admin alone also lands on staff."""
    kinds = set(kinds)
    if PrincipalKind.Staff in kinds or PrincipalKind.GlobalAdmin in kinds:
        return Dashboard.Staff
    return Dashboard.Learner


def can_escalate(principals: Sequence[Principal]) -> bool:
    return any(
        p.kind == PrincipalKind.GlobalAdmin and p.is_active and p.all_roles()
        for p in principals
    )


# ============================================================================
# TOKEN CLAIMS SNAPSHOT / CONTINUATION DELTA
# ============================================================================
def claims_from_view(view: SessionView) -> dict:
    return {
        "user_types": [k.value for k in view.user_types],
        "roles": view.all_roles(),
        "access_rights": list(view.all_access_rights),
        "departments": view.department_ids(),
    }


def _added(now: Iterable, before: Iterable) -> list:
    return sorted(set(now) - set(before))


def diff_claims(previous: dict, view: SessionView) -> SessionChanges:
    current = claims_from_view(view)
    return SessionChanges(
        roles_added=_added(current["roles"], previous.get("roles", [])),
        roles_removed=_added(previous.get("roles", []), current["roles"]),
        rights_added=_added(current["access_rights"], previous.get("access_rights", [])),
        rights_removed=_added(previous.get("access_rights", []), current["access_rights"]),
        departments_added=_added(current["departments"], previous.get("departments", [])),
        departments_removed=_added(previous.get("departments", []), current["departments"]),
    )


# ============================================================================
# SESSION ASSEMBLER
# ============================================================================
class SessionAssembler:
    """
    Builds the resolved session view for login, continuation and
    department switching. Always recomputed from the stores; token claims
    are only used to report what changed.
    """

    def __init__(self, session: AsyncSession, catalog: RoleCatalog):
        self.session = session
        self.departments = DepartmentStore(session)
        self.resolver = RoleResolver(self.departments)
        self.aggregator = AccessRightAggregator(catalog)

    async def load_principals(self, user: User) -> List[Principal]:
        return await load_principals(self.session, user.id)

    async def build_session_view(
        self,
        user: User,
        principals: Optional[List[Principal]] = None,
    ) -> SessionView:
        if principals is None:
            principals = await self.load_principals(user)
        kinds = [p.kind for p in principals]
        include_hidden = PrincipalKind.GlobalAdmin in kinds

        views: List[DepartmentView] = []
        seen = set()
        for principal in principals:
            for membership in principal.active_memberships():
                if membership.department_id in seen:
                    continue
                seen.add(membership.department_id)

                department = await self.departments.get_department(membership.department_id)
                if department is None:
                    logger.warning(
                        f"User {user.id} holds a {principal.kind.value} membership in missing department {membership.department_id}"
                    )
                    continue
                if not department.is_active:
                    continue

                resolved = await self.resolver.resolve_for_principals(principals, department.id)
                rights = self.aggregator.expand_roles(resolved.roles)
                children = await self.resolver.cascaded_children(
                    principals, department, resolved.roles, rights, include_hidden=include_hidden
                )
                views.append(DepartmentView(
                    department_id=department.id,
                    department_name=department.name,
                    roles=resolved.roles,
                    access_rights=rights,
                    is_primary=resolved.is_primary,
                    is_active=membership.is_active,
                    is_direct_member=True,
                    child_departments=children,
                ))

        return SessionView(
            user_id=user.id,
            user_types=kinds,
            default_dashboard=select_default_dashboard(kinds),
            can_escalate_to_admin=can_escalate(principals),
            department_memberships=views,
            all_access_rights=self.aggregator.union_across_departments(v.roles for v in views),
            last_selected_department=user.last_selected_department_id,
        )

    async def resolve_department_view(
        self,
        user: User,
        department_id: int,
        principals: Optional[List[Principal]] = None,
    ) -> DepartmentView:
        if principals is None:
            principals = await self.load_principals(user)
        include_hidden = any(p.kind == PrincipalKind.GlobalAdmin for p in principals)

        department = await self.departments.get_department(department_id)
        if department is None or (not department.is_visible and not include_hidden):
            raise DepartmentNotFound()

        # NotAMember propagates from the resolver
        resolved = await self.resolver.resolve_for_principals(principals, department_id)

        if not department.is_active:
            raise DepartmentInactive()

        rights = self.aggregator.expand_roles(resolved.roles)
        children = await self.resolver.cascaded_children(
            principals,
            department,
            resolved.roles,
            rights,
            include_hidden=include_hidden,
            inherited_from=resolved.inherited_from,
        )
        return DepartmentView(
            department_id=department.id,
            department_name=department.name,
            roles=resolved.roles,
            access_rights=rights,
            is_primary=resolved.is_primary,
            is_active=department.is_active,
            is_direct_member=resolved.is_direct_member,
            inherited_from=resolved.inherited_from,
            child_departments=children,
        )

    async def switch_department(self, user: User, department_id: int) -> DepartmentView:
        view = await self.resolve_department_view(user, department_id)

        user.last_selected_department_id = department_id
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info(
            f"User {user.id} switched to department {department_id} "
            f"(direct={view.is_direct_member}, inherited_from={view.inherited_from})"
        )
        return view
