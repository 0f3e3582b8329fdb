# app/core/role_catalog.py

from typing import Dict, Iterable, List

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.exceptions import UnknownRole
from app.models.enums import PrincipalKind
from app.models.role import RoleDefinition
from app.schemas.role import RoleRead


def normalize_role_name(name: str) -> str:
    return str(name).strip().lower()


class RoleCatalog:
    """
    Read-mostly registry of role definitions.

    Loaded once at startup and refreshed through `reload()`. The resolver and
    the access-right aggregator receive it explicitly; nothing reaches it
    through module globals.
    """

    def __init__(self, roles: Iterable[RoleRead] = ()):
        self._roles: Dict[str, RoleRead] = {}
        self._replace(roles)

    def _replace(self, roles: Iterable[RoleRead]) -> None:
        mapping: Dict[str, RoleRead] = {}
        for role in roles:
            key = normalize_role_name(role.name)
            if key in mapping:
                raise ValueError(f"Duplicate role name '{role.name}' in catalog")
            mapping[key] = role
        # Swap in one assignment so readers never see a half-built catalog
        self._roles = mapping

    @classmethod
    async def from_database(cls, session: AsyncSession) -> "RoleCatalog":
        catalog = cls()
        await catalog.reload(session)
        return catalog

    async def reload(self, session: AsyncSession) -> int:
        result = await session.execute(select(RoleDefinition))
        definitions = result.scalars().all()
        self._replace(RoleRead.model_validate(d) for d in definitions)
        logger.info(f"Role catalog loaded: {len(self._roles)} roles")
        return len(self._roles)

    def get_role(self, name: str) -> RoleRead:
        role = self._roles.get(normalize_role_name(name))
        if role is None:
            logger.error(f"UNKNOWN ROLE '{name}': a stored membership references a role missing from the catalog")
            raise UnknownRole(name)
        return role

    def roles_for_kind(self, kind: PrincipalKind) -> List[RoleRead]:
        return [r for r in self._roles.values() if r.principal_kind == kind]

    def all(self) -> List[RoleRead]:
        return sorted(self._roles.values(), key=lambda r: (r.principal_kind.value, r.name))

    def __contains__(self, name: str) -> bool:
        return normalize_role_name(name) in self._roles

    def __len__(self) -> int:
        return len(self._roles)
