from typing import Optional
from pydantic import BaseModel, Field


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    code: Optional[str] = Field(default=None, max_length=32)
    parent_id: Optional[int] = None
    require_explicit_membership: bool = False
    is_active: bool = True
    is_visible: bool = True


class DepartmentRead(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    parent_id: Optional[int] = None
    require_explicit_membership: bool
    is_active: bool
    is_visible: bool

    class Config:
        from_attributes = True
