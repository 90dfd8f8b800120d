"""Check log model - check-in / check-out events recorded at the security desk"""
from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4

from domain.timeutils import utcnow


class CheckLogBase(SQLModel):
    pass_id: UUID = Field(foreign_key="passes.id", index=True)
    action: str = Field(index=True)  # check_in, check_out
    building: Optional[str] = None
    performed_by: Optional[UUID] = Field(foreign_key="users.id", default=None)


class CheckLog(CheckLogBase, table=True):
    __tablename__ = "check_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime(timezone=True))
