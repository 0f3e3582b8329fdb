from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.enums import PrincipalKind


# ---------------------------------------------------------
# MEMBERSHIP (as seen by the resolver)
# ---------------------------------------------------------
class MembershipRecord(BaseModel):
    department_id: int
    roles: List[str]
    is_primary: bool = False
    is_active: bool = True
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------
# PRINCIPALS (tagged union keyed by `kind`)
# ---------------------------------------------------------
class PrincipalBase(BaseModel):
    user_id: UUID
    is_active: bool = True
    memberships: List[MembershipRecord] = Field(default_factory=list)

    def active_memberships(self) -> List[MembershipRecord]:
        if not self.is_active:
            return []
        return [m for m in self.memberships if m.is_active and m.roles]

    def membership_for(self, department_id: int) -> Optional[MembershipRecord]:
        for membership in self.active_memberships():
            if membership.department_id == department_id:
                return membership
        return None

    def all_roles(self) -> List[str]:
        roles: List[str] = []
        for membership in self.active_memberships():
            for role in membership.roles:
                if role not in roles:
                    roles.append(role)
        return roles


class LearnerPrincipal(PrincipalBase):
    kind: Literal[PrincipalKind.Learner] = PrincipalKind.Learner


class StaffPrincipal(PrincipalBase):
    kind: Literal[PrincipalKind.Staff] = PrincipalKind.Staff


class GlobalAdminPrincipal(PrincipalBase):
    kind: Literal[PrincipalKind.GlobalAdmin] = PrincipalKind.GlobalAdmin


Principal = Annotated[
    Union[LearnerPrincipal, StaffPrincipal, GlobalAdminPrincipal],
    Field(discriminator="kind"),
]

PRINCIPAL_TYPES = {
    PrincipalKind.Learner: LearnerPrincipal,
    PrincipalKind.Staff: StaffPrincipal,
    PrincipalKind.GlobalAdmin: GlobalAdminPrincipal,
}
