# app/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from datetime import datetime, timezone
import uuid
from typing import List, Optional

from app.models.enums import Dashboard
from app.models.role import JSONList


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    email: str = Field(nullable=False, index=True, unique=True)
    first_name: str = Field(nullable=False)
    last_name: str = Field(default="", nullable=False)
    password_hash: str = Field(nullable=False)

    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )

    # Kept in sync with the principal records that exist for this user
    user_types: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSONList, nullable=False)
    )

    last_selected_department_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=True)
    )

    default_dashboard: str = Field(
        default=Dashboard.Learner.value,
        sa_column=Column(String(16), nullable=False)
    )

    last_login: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
