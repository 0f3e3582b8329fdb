from enum import Enum


class PrincipalKind(str, Enum):
    Learner = "learner"
    Staff = "staff"
    GlobalAdmin = "global-admin"


class Dashboard(str, Enum):
    Learner = "learner"
    Staff = "staff"


# Order in which principal kinds are consulted when several of them
# hold a membership in the same department.
PRINCIPAL_PRECEDENCE = (
    PrincipalKind.Staff,
    PrincipalKind.GlobalAdmin,
    PrincipalKind.Learner,
)
