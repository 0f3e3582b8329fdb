# app/models/principal.py

from datetime import datetime
from typing import List, Optional
import uuid

from sqlmodel import SQLModel, Field
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from app.models.role import JSONList
from app.models.user import utcnow


# ------------------------------------------------------------
# PRINCIPAL RECORDS (one table per kind, keyed by the user id)
# ------------------------------------------------------------
class Learner(SQLModel, table=True):
    __tablename__ = "learners"

    id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class Staff(SQLModel, table=True):
    __tablename__ = "staff"

    id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    title: Optional[str] = None
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class GlobalAdmin(SQLModel, table=True):
    __tablename__ = "global_admins"

    id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)

    # Hashed separately from the login password
    escalation_password_hash: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True)
    )

    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


# ------------------------------------------------------------
# DEPARTMENT MEMBERSHIPS (ordered list per principal)
# ------------------------------------------------------------
class DepartmentMembership(SQLModel, table=True):
    __tablename__ = "department_memberships"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    principal_kind: str = Field(
        sa_column=Column(String(16), nullable=False, index=True)
    )

    department_id: int = Field(
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=False)
    )

    roles: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSONList, nullable=False)
    )

    is_primary: bool = Field(
        default=False,
        sa_column=Column(Boolean, default=False, nullable=False)
    )

    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )

    joined_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    position: int = Field(
        default=0,
        sa_column=Column(Integer, default=0, nullable=False)
    )
