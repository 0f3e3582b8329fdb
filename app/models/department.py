from sqlmodel import SQLModel, Field
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from typing import Optional


class Department(SQLModel, table=True):
    __tablename__ = "departments"

    # Primary Key must be ONLY inside sa_column
    id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True)
    )

    name: str = Field(
        sa_column=Column(String(128), nullable=False)
    )

    code: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), unique=True, nullable=True)
    )

    # Forest: at most one parent, no cycles (enforced by admin tooling, guarded on read)
    parent_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    )

    # --------------------------------------------------------
    # CASCADING RULES
    # --------------------------------------------------------
    require_explicit_membership: bool = Field(
        default=False,
        sa_column=Column(Boolean, default=False, nullable=False),
        description="If True, ancestor memberships never cascade into this department."
    )

    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )

    is_visible: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )
