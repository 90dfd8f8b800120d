"""Appointments API - scheduled visits"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from api.deps import require
from domain.capabilities import Capability, CurrentUser, can_host
from domain.errors import NotFoundError, ValidationError
from domain.models import Appointment, Pass, User, Visitor
from domain.schemas import AppointmentCreate, AppointmentRead, AppointmentUpdate
from domain.services.passes import parse_id
from domain.timeutils import as_utc, utcnow
from infrastructure.database import get_session

router = APIRouter()


async def _get_appointment(session: AsyncSession, appointment_id: str) -> Appointment:
    parsed = parse_id(appointment_id)
    appointment = await session.get(Appointment, parsed) if parsed else None
    if not appointment:
        raise NotFoundError("Appointment not found")
    return appointment


@router.get("", response_model=List[AppointmentRead])
async def list_appointments(
    user: CurrentUser = Depends(require(Capability.MANAGE_APPOINTMENTS)),
    session: AsyncSession = Depends(get_session),
    host: Optional[str] = None,
    visitor: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
):
    """List appointments, soonest first"""
    query = select(Appointment)

    if host:
        host_id = parse_id(host)
        if host_id is None:
            return []
        query = query.where(Appointment.host_id == host_id)

    if visitor:
        visitor_id = parse_id(visitor)
        if visitor_id is None:
            return []
        query = query.where(Appointment.visitor_id == visitor_id)

    if status:
        query = query.where(Appointment.status == status)
    if start_date:
        query = query.where(Appointment.scheduled_at >= as_utc(start_date))
    if end_date:
        query = query.where(Appointment.scheduled_at <= as_utc(end_date))

    query = query.order_by(Appointment.scheduled_at).offset(skip).limit(limit)
    result = await session.execute(query)
    return [AppointmentRead.model_validate(a) for a in result.scalars().all()]


@router.post("", response_model=AppointmentRead, status_code=201)
async def create_appointment(
    appointment: AppointmentCreate,
    user: CurrentUser = Depends(require(Capability.MANAGE_APPOINTMENTS)),
    session: AsyncSession = Depends(get_session),
):
    """Schedule a visit"""
    invalid = []
    if not await session.get(Visitor, appointment.visitor):
        invalid.append("visitor")
    host = await session.get(User, appointment.host)
    if host is None or not can_host(host):
        invalid.append("host")
    if invalid:
        raise ValidationError("Unknown or malformed references", invalid)

    db_appointment = Appointment(
        visitor_id=appointment.visitor,
        host_id=appointment.host,
        scheduled_at=as_utc(appointment.scheduled_at),
        purpose=appointment.purpose,
        created_by=user.id,
    )
    session.add(db_appointment)
    await session.commit()
    await session.refresh(db_appointment)
    return AppointmentRead.model_validate(db_appointment)


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: str,
    user: CurrentUser = Depends(require(Capability.MANAGE_APPOINTMENTS)),
    session: AsyncSession = Depends(get_session),
):
    return AppointmentRead.model_validate(await _get_appointment(session, appointment_id))


@router.patch("/{appointment_id}", response_model=AppointmentRead)
async def update_appointment(
    appointment_id: str,
    appointment_update: AppointmentUpdate,
    user: CurrentUser = Depends(require(Capability.MANAGE_APPOINTMENTS)),
    session: AsyncSession = Depends(get_session),
):
    """Reschedule, change purpose, or complete/cancel an appointment"""
    db_appointment = await _get_appointment(session, appointment_id)

    update_data = appointment_update.model_dump(exclude_unset=True)
    if "scheduled_at" in update_data:
        if update_data["scheduled_at"] is None:
            raise ValidationError("scheduledAt cannot be empty", ["scheduledAt"])
        update_data["scheduled_at"] = as_utc(update_data["scheduled_at"])
    for key, value in update_data.items():
        setattr(db_appointment, key, value)
    db_appointment.updated_at = utcnow()

    session.add(db_appointment)
    await session.commit()
    await session.refresh(db_appointment)
    return AppointmentRead.model_validate(db_appointment)


@router.delete("/{appointment_id}", response_model=AppointmentRead)
async def delete_appointment(
    appointment_id: str,
    user: CurrentUser = Depends(require(Capability.MANAGE_APPOINTMENTS)),
    session: AsyncSession = Depends(get_session),
):
    """Delete an appointment that no pass refers to"""
    db_appointment = await _get_appointment(session, appointment_id)

    in_use = await session.execute(select(Pass.id).where(Pass.appointment_id == db_appointment.id).limit(1))
    if in_use.first():
        raise ValidationError("Appointment still has passes", ["appointment"])

    snapshot = AppointmentRead.model_validate(db_appointment)
    await session.delete(db_appointment)
    await session.commit()
    return snapshot
