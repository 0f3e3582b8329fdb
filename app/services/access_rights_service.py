# app/services/access_rights_service.py

from typing import Iterable, List, Set

from app.core.role_catalog import RoleCatalog

WILDCARD = "*"


# ============================================================================
# WILDCARD MATCHING
# ============================================================================
def matches_wildcard(granted: str, required: str) -> bool:
    """
    'content:*' grants 'content:courses:read'; a lone '*' grants everything.
    A granted right without a trailing '*' only matches itself.
    """
    if not granted.endswith(WILDCARD):
        return granted == required
    prefix = granted[:-1]
    return required.startswith(prefix)


def has_access_right(user_rights: Iterable[str], required: str) -> bool:
    if not required:
        return False
    rights = list(user_rights or [])
    if required in rights:
        return True
    return any(matches_wildcard(granted, required) for granted in rights)


def has_any_access_right(user_rights: Iterable[str], required: Iterable[str]) -> bool:
    rights = list(user_rights or [])
    return any(has_access_right(rights, r) for r in required or [])


def has_all_access_rights(user_rights: Iterable[str], required: Iterable[str]) -> bool:
    # No requirements means always authorized
    rights = list(user_rights or [])
    return all(has_access_right(rights, r) for r in required or [])


# ============================================================================
# ROLE -> RIGHTS AGGREGATION
# ============================================================================
class AccessRightAggregator:
    """
    Expands role names into access rights through the role catalog.

    Wildcards are kept verbatim and never enumerated into concrete rights.
    Deduplication is exact string equality, so 'content:*' and
    'content:courses:read' are both retained.
    """

    def __init__(self, catalog: RoleCatalog):
        self.catalog = catalog

    def expand_roles(self, role_names: Iterable[str]) -> List[str]:
        rights: Set[str] = set()
        for name in role_names:
            # UnknownRole propagates: dropping a role's rights silently is not an option
            role = self.catalog.get_role(name)
            if not role.is_active:
                continue
            rights.update(role.access_rights)
        return sorted(rights)

    def union_across_departments(self, per_department_roles: Iterable[Iterable[str]]) -> List[str]:
        rights: Set[str] = set()
        for roles in per_department_roles:
            rights.update(self.expand_roles(roles))
        return sorted(rights)
