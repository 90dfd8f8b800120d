"""Pass model - a visitor's access pass with its QR payload and validity window"""
from enum import Enum
from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship
from uuid import UUID, uuid4

from domain.timeutils import utcnow
from .appointment import Appointment
from .user import User
from .visitor import Visitor


class PassStatus(str, Enum):
    ACTIVE = "active"
    CHECKED_OUT = "checked_out"
    EXPIRED = "expired"
    REVOKED = "revoked"


class QrState(str, Enum):
    PENDING_IMAGE = "pending-image"
    COMPLETE = "complete"


# Allowed status changes through the update API; anything not listed is rejected
STATUS_TRANSITIONS = {
    PassStatus.ACTIVE: {PassStatus.CHECKED_OUT, PassStatus.EXPIRED, PassStatus.REVOKED},
    PassStatus.EXPIRED: {PassStatus.ACTIVE},
    PassStatus.CHECKED_OUT: set(),
    PassStatus.REVOKED: set(),
}


class PassBase(SQLModel):
    visitor_id: Optional[UUID] = Field(foreign_key="visitors.id", index=True, default=None)
    host_id: Optional[UUID] = Field(foreign_key="users.id", index=True, default=None)
    appointment_id: Optional[UUID] = Field(foreign_key="appointments.id", default=None)

    pass_number: str = Field(index=True, unique=True)
    qr_data: str
    qr_image: Optional[str] = None
    qr_state: str = Field(default=QrState.PENDING_IMAGE.value, index=True)

    valid_from: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    valid_to: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))  # doubles as expected exit time
    expected_exit_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    status: str = Field(default=PassStatus.ACTIVE.value, index=True)
    building: Optional[str] = Field(default=None, index=True)
    purpose: Optional[str] = None

    entry_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    exit_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    created_by: Optional[UUID] = Field(foreign_key="users.id", index=True, default=None)


class Pass(PassBase, table=True):
    __tablename__ = "passes"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    visitor: Optional[Visitor] = Relationship()
    host: Optional[User] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[Pass.host_id]"}
    )
    appointment: Optional[Appointment] = Relationship()
