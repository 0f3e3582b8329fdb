from typing import List, Optional
from pydantic import BaseModel

from app.models.enums import PrincipalKind


class RoleRead(BaseModel):
    name: str
    principal_kind: PrincipalKind
    display_name: Optional[str] = None
    description: Optional[str] = None
    access_rights: List[str]
    is_active: bool = True

    class Config:
        from_attributes = True


class CatalogReloadResponse(BaseModel):
    detail: str
    role_count: int
