from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.enums import Dashboard, PrincipalKind


# -------------------------------------------------------------------
# ROLE RESOLUTION RESULT
# -------------------------------------------------------------------
class ResolvedRoles(BaseModel):
    department_id: int
    roles: List[str]
    is_direct_member: bool
    inherited_from: Optional[int] = None
    principal_kinds: List[PrincipalKind] = Field(default_factory=list)
    is_primary: bool = False


# -------------------------------------------------------------------
# RESOLVED DEPARTMENT VIEW (recursive for cascaded descendants)
# -------------------------------------------------------------------
class DepartmentView(BaseModel):
    department_id: int
    department_name: str
    roles: List[str]
    access_rights: List[str]
    is_primary: bool = False
    is_active: bool = True
    is_direct_member: bool = True
    inherited_from: Optional[int] = None
    child_departments: List["DepartmentView"] = Field(default_factory=list)


DepartmentView.model_rebuild()


# -------------------------------------------------------------------
# FULL SESSION VIEW (login / continue / GET /roles/me)
# -------------------------------------------------------------------
class SessionView(BaseModel):
    user_id: UUID
    user_types: List[PrincipalKind]
    default_dashboard: Dashboard
    can_escalate_to_admin: bool
    department_memberships: List[DepartmentView]
    all_access_rights: List[str]
    last_selected_department: Optional[int] = None

    def all_roles(self) -> List[str]:
        roles = set()
        for view in self.department_memberships:
            roles.update(view.roles)
        return sorted(roles)

    def department_ids(self) -> List[int]:
        return [view.department_id for view in self.department_memberships]


# -------------------------------------------------------------------
# CONTINUATION DELTA
# -------------------------------------------------------------------
class SessionChanges(BaseModel):
    roles_added: List[str] = Field(default_factory=list)
    roles_removed: List[str] = Field(default_factory=list)
    rights_added: List[str] = Field(default_factory=list)
    rights_removed: List[str] = Field(default_factory=list)
    departments_added: List[int] = Field(default_factory=list)
    departments_removed: List[int] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any((
            self.roles_added, self.roles_removed,
            self.rights_added, self.rights_removed,
            self.departments_added, self.departments_removed,
        ))
