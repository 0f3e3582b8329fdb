from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str = ""


# ---------------------------------------------------------
# READ USER (response)
# ---------------------------------------------------------
class UserRead(UserBase):
    id: UUID
    is_active: bool
    user_types: List[str] = []
    default_dashboard: str
    last_selected_department_id: Optional[int] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True
