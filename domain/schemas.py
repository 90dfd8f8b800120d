"""Request/response schemas for the HTTP API.

Python attributes are snake_case; JSON keys are camelCase. Response
timestamps are always UTC with an explicit offset.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from domain.capabilities import Role
from domain.models.access_pass import PassStatus
from domain.timeutils import as_utc

# Stored values may come back naive (SQLite); responses are always UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CommandModel(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# === Expanded references ===

class VisitorSummary(ApiModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None


class HostSummary(ApiModel):
    id: UUID
    name: str
    email: Optional[str] = None


class AppointmentSummary(ApiModel):
    id: UUID
    scheduled_at: UtcDatetime
    purpose: Optional[str] = None
    status: str


# === Passes ===

class PassRead(ApiModel):
    id: UUID
    pass_number: str

    visitor_id: Optional[UUID] = None
    host_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    visitor: Optional[VisitorSummary] = None
    host: Optional[HostSummary] = None
    appointment: Optional[AppointmentSummary] = None

    qr_data: str
    qr_image: Optional[str] = None
    qr_state: str

    valid_from: Optional[UtcDatetime] = None
    valid_to: Optional[UtcDatetime] = None
    expected_exit_time: Optional[UtcDatetime] = None

    status: str
    building: Optional[str] = None
    purpose: Optional[str] = None
    entry_time: Optional[UtcDatetime] = None
    exit_time: Optional[UtcDatetime] = None

    created_by: Optional[UUID] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class IssuePassRequest(ApiModel):
    """Issuance input. Everything is optional here so that missing
    mandatory fields can be reported together by the service."""

    visitor: Optional[str] = None
    host: Optional[str] = None
    appointment: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    expected_exit_time: Optional[datetime] = None
    building: Optional[str] = None
    purpose: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class PassFilters(ApiModel):
    host: Optional[str] = None
    visitor: Optional[str] = None
    status: Optional[str] = None


class UpdateStatus(CommandModel):
    type: Literal["status"]
    status: PassStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class UpdateValidity(CommandModel):
    type: Literal["validity"]
    valid_from: datetime
    valid_to: datetime


class UpdateLocation(CommandModel):
    type: Literal["location"]
    building: Optional[str] = None

    @field_validator("building", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class UpdateExpectedExit(CommandModel):
    type: Literal["expectedExit"]
    expected_exit_time: Optional[datetime] = None


class UpdateAppointment(CommandModel):
    type: Literal["appointment"]
    appointment: Optional[UUID] = None


PassUpdateCommand = Annotated[
    Union[UpdateStatus, UpdateValidity, UpdateLocation, UpdateExpectedExit, UpdateAppointment],
    Field(discriminator="type"),
]


class QrImageRead(ApiModel):
    qr_image: Optional[str] = None


class BackfillResult(ApiModel):
    processed: int
    completed: int
    failed: int
    failed_ids: List[UUID] = Field(default_factory=list)


# === Live occupancy ===

class VisitorDetail(ApiModel):
    id: UUID
    name: Optional[str] = None
    purpose: Optional[str] = None
    host: Optional[str] = None
    entry_time: Optional[UtcDatetime] = None
    expected_exit: Optional[UtcDatetime] = None
    category: Literal["onTime", "approachingExit", "overstay"]


class BuildingSummary(ApiModel):
    building: str
    total: int = 0
    on_time: int = 0
    approaching_exit: int = 0
    overstay: int = 0
    visitors: List[VisitorDetail] = Field(default_factory=list)


class LiveOccupancyRead(ApiModel):
    generated_at: UtcDatetime
    buildings: List[BuildingSummary]


# === Check logs ===

class ScanRequest(ApiModel):
    qr_data: str = Field(min_length=1)
    action: Literal["check_in", "check_out"]
    building: Optional[str] = None


class CheckLogRead(ApiModel):
    id: UUID
    pass_id: UUID
    action: str
    building: Optional[str] = None
    performed_by: Optional[UUID] = None
    created_at: UtcDatetime


class ScanResult(ApiModel):
    check_log: CheckLogRead
    access_pass: PassRead = Field(alias="pass")


# === Reports ===

class SummaryRead(ApiModel):
    total_passes: int
    active_passes: int
    total_check_ins: int
    total_check_outs: int


# === Current user ===

class NavItem(ApiModel):
    key: str
    label: str
    path: str


class MeRead(ApiModel):
    id: UUID
    role: Role
    capabilities: List[str]
    navigation: List[NavItem]
    quick_actions: List[NavItem]
    live_poll_interval_seconds: int


# === Users ===

class UserCreate(ApiModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: Role = Role.EMPLOYEE
    department: Optional[str] = None
    phone: Optional[str] = None


class UserRead(ApiModel):
    id: UUID
    name: str
    email: str
    role: str
    department: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: UtcDatetime


# === Visitors ===

class VisitorCreate(ApiModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    id_number: Optional[str] = None


class VisitorUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    id_number: Optional[str] = None


class VisitorRead(ApiModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    id_number: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


# === Appointments ===

class AppointmentCreate(ApiModel):
    visitor: UUID
    host: UUID
    scheduled_at: datetime
    purpose: Optional[str] = None


class AppointmentUpdate(ApiModel):
    scheduled_at: Optional[datetime] = None
    purpose: Optional[str] = None
    status: Optional[Literal["scheduled", "completed", "cancelled"]] = None


class AppointmentRead(ApiModel):
    id: UUID
    visitor_id: UUID
    host_id: UUID
    scheduled_at: UtcDatetime
    purpose: Optional[str] = None
    status: str
    created_by: Optional[UUID] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
