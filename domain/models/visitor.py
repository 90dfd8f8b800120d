"""Visitor model"""
from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4

from domain.timeutils import utcnow


class VisitorBase(SQLModel):
    name: str = Field(index=True)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    id_number: Optional[str] = None  # Government ID / badge number
    created_by: Optional[UUID] = Field(foreign_key="users.id", index=True, default=None)


class Visitor(VisitorBase, table=True):
    __tablename__ = "visitors"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
