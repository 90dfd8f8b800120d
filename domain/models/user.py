"""User model - staff accounts (admins, employees/hosts, security desk)"""
from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4

from domain.timeutils import utcnow


class UserBase(SQLModel):
    name: str = Field(index=True)
    email: str = Field(index=True, unique=True)
    role: str = Field(default="employee", index=True)  # admin, employee, security
    department: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = Field(default=True)


class User(UserBase, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
