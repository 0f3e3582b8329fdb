# app/models/role.py

from typing import List, Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Boolean, Column, String
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONList = JSON().with_variant(JSONB(), "postgresql")


class RoleDefinition(SQLModel, table=True):
    __tablename__ = "role_definitions"

    # Role names are unique across every principal kind
    name: str = Field(
        sa_column=Column(String(64), primary_key=True)
    )

    principal_kind: str = Field(
        sa_column=Column(String(16), nullable=False, index=True)
    )

    display_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True)
    )

    description: Optional[str] = None

    # Exact rights ("domain:resource:action") or trailing wildcards ("domain:*")
    access_rights: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSONList, nullable=False)
    )

    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )
