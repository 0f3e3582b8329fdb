# app/services/role_resolver.py

from typing import Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from loguru import logger

from app.core.config import settings
from app.core.exceptions import DepartmentHierarchyError, DepartmentNotFound, NotAMember
from app.models.department import Department
from app.schemas.principal import Principal
from app.schemas.session import DepartmentView, ResolvedRoles


class DepartmentSource(Protocol):
    async def get_department(self, department_id: int) -> Optional[Department]: ...

    async def get_parent(self, department_id: int) -> Optional[Department]: ...

    async def list_children(self, department_id: int) -> List[Department]: ...


def _merge_roles(principals: Iterable[Principal], department_id: int) -> Tuple[List[str], list, bool]:
    """
    Ordered union of the roles every principal holds directly in a department.
    Principals are expected in precedence order (staff, global-admin, learner).
    """
    roles: List[str] = []
    kinds = []
    is_primary = False
    for principal in principals:
        membership = principal.membership_for(department_id)
        if membership is None:
            continue
        kinds.append(principal.kind)
        is_primary = is_primary or membership.is_primary
        for role in membership.roles:
            if role not in roles:
                roles.append(role)
    return roles, kinds, is_primary


class RoleResolver:
    """
    Resolves the effective roles of a principal (or of all principals of one
    user) in a department, walking the ancestry chain when there is no direct
    membership.

    Cascading rules:
    - the nearest ancestor with an active membership wins;
    - a department with `require_explicit_membership` stops the walk, both
      when it is the target and when it sits between the target and the
      ancestor being tested;
    - inactive memberships are never considered.
    """

    def __init__(self, departments: DepartmentSource, max_depth: Optional[int] = None):
        self.departments = departments
        self.max_depth = max_depth or settings.MAX_DEPARTMENT_DEPTH

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    async def resolve_roles(self, principal: Principal, department_id: int) -> ResolvedRoles:
        return await self.resolve_for_principals([principal], department_id)

    async def resolve_for_principals(
        self,
        principals: Sequence[Principal],
        department_id: int,
    ) -> ResolvedRoles:
        target = await self.departments.get_department(department_id)
        if target is None:
            raise DepartmentNotFound()

        roles, kinds, is_primary = _merge_roles(principals, target.id)
        if roles:
            return ResolvedRoles(
                department_id=target.id,
                roles=roles,
                is_direct_member=True,
                principal_kinds=kinds,
                is_primary=is_primary,
            )

        visited: Set[int] = {target.id}
        current = target
        for _ in range(self.max_depth):
            # Wall on the target or on any department between it and the ancestor
            if current.require_explicit_membership:
                raise NotAMember()

            parent = await self.departments.get_parent(current.id)
            if parent is None:
                raise NotAMember()

            if parent.id in visited:
                logger.error(f"Department cycle detected while resolving {department_id} (revisited {parent.id})")
                raise DepartmentHierarchyError()
            visited.add(parent.id)

            roles, kinds, _ = _merge_roles(principals, parent.id)
            if roles:
                return ResolvedRoles(
                    department_id=target.id,
                    roles=roles,
                    is_direct_member=False,
                    inherited_from=parent.id,
                    principal_kinds=kinds,
                )
            current = parent

        logger.error(f"Department ancestry of {department_id} exceeds {self.max_depth} levels")
        raise DepartmentHierarchyError()

    # ------------------------------------------------------------------
    # Cascaded child departments
    # ------------------------------------------------------------------
    async def cascaded_children(
        self,
        principals: Sequence[Principal],
        department: Department,
        roles: List[str],
        access_rights: List[str],
        include_hidden: bool = False,
        inherited_from: Optional[int] = None,
    ) -> List[DepartmentView]:
        """
        Descendants of a directly held department that inherit its roles.

        A descendant is left out, together with its own subtree, when it
        requires explicit membership or when the user holds a direct
        membership there (it is listed as its own entry instead).
        """
        source = inherited_from or department.id
        direct_ids = {
            m.department_id
            for principal in principals
            for m in principal.active_memberships()
        }

        listing: List[DepartmentView] = []
        visited: Set[int] = {department.id}
        stack: List[Tuple[Department, List[DepartmentView], int]] = [(department, listing, 0)]

        while stack:
            parent, bucket, depth = stack.pop()
            children = await self.departments.list_children(parent.id)
            if children and depth >= self.max_depth:
                logger.error(f"Department subtree of {department.id} exceeds {self.max_depth} levels")
                raise DepartmentHierarchyError()

            for child in children:
                if child.id in visited:
                    logger.error(f"Department cycle detected below {department.id} (revisited {child.id})")
                    raise DepartmentHierarchyError()
                visited.add(child.id)

                if not child.is_active or (not child.is_visible and not include_hidden):
                    continue
                if child.require_explicit_membership or child.id in direct_ids:
                    continue

                view = DepartmentView(
                    department_id=child.id,
                    department_name=child.name,
                    roles=list(roles),
                    access_rights=list(access_rights),
                    is_primary=False,
                    is_active=child.is_active,
                    is_direct_member=False,
                    inherited_from=source,
                )
                bucket.append(view)
                stack.append((child, view.child_departments, depth + 1))

        return listing
