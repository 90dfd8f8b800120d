"""Appointment model - a scheduled visit of a visitor to a host"""
from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4

from domain.timeutils import utcnow


class AppointmentBase(SQLModel):
    visitor_id: UUID = Field(foreign_key="visitors.id", index=True)
    host_id: UUID = Field(foreign_key="users.id", index=True)
    scheduled_at: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    purpose: Optional[str] = None
    status: str = Field(default="scheduled")  # scheduled, completed, cancelled
    created_by: Optional[UUID] = Field(foreign_key="users.id", index=True, default=None)


class Appointment(AppointmentBase, table=True):
    __tablename__ = "appointments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
