"""Pass lifecycle: issuance, retrieval, command-based updates, deletion.

Issuance is a two-phase write. The record is committed first in the
``pending-image`` QR state, then the QR image is rendered and the record is
moved to ``complete``. A failed render leaves the pass pending; the backfill
path re-renders every pending pass.
"""

from __future__ import annotations

import json
import random
import time
from typing import Any, List, Optional, Sequence
from uuid import UUID

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import delete as sa_delete
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from domain.capabilities import Capability, can_host, has_capability
from domain.errors import EncodingError, MissingFieldsError, NotFoundError, ValidationError
from domain.models import Appointment, CheckLog, Pass, PassStatus, QrState, User, Visitor
from domain.models.access_pass import STATUS_TRANSITIONS
from domain.schemas import (
    BackfillResult,
    IssuePassRequest,
    PassFilters,
    PassRead,
    PassUpdateCommand,
    UpdateAppointment,
    UpdateExpectedExit,
    UpdateLocation,
    UpdateStatus,
    UpdateValidity,
)
from domain.timeutils import as_utc, utcnow

logger = structlog.get_logger()

# Checked in this order; the error lists every missing one
REQUIRED_ISSUE_FIELDS = ("visitor", "host", "valid_from", "valid_to")
_FIELD_LABELS = {
    "visitor": "visitor",
    "host": "host",
    "appointment": "appointment",
    "valid_from": "validFrom",
    "valid_to": "validTo",
}


def generate_pass_number() -> str:
    """PASS-<epoch millis>-<0..999>. Best effort uniqueness only."""
    return f"PASS-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def build_qr_data(pass_number: str) -> str:
    return json.dumps({"passNumber": pass_number})


def parse_id(raw: Optional[str]) -> Optional[UUID]:
    """Parse a path/body identifier; malformed values yield None."""
    if raw is None:
        return None
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError:
        return None


def _with_references(query):
    return query.options(
        selectinload(Pass.visitor),
        selectinload(Pass.host),
        selectinload(Pass.appointment),
    )


def _visible_to(query, user):
    if not has_capability(user.role, Capability.VIEW_ALL_PASSES):
        query = query.where(Pass.created_by == user.id)
    return query


async def _load_pass(session: AsyncSession, pass_id: UUID) -> Optional[Pass]:
    query = _with_references(select(Pass).where(Pass.id == pass_id))
    result = await session.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def get_visible_pass(session: AsyncSession, raw_id: str, user) -> Pass:
    """Fetch a pass the user may observe, with references loaded."""
    pass_id = parse_id(raw_id)
    if pass_id is None:
        raise NotFoundError()

    query = _visible_to(_with_references(select(Pass).where(Pass.id == pass_id)), user)
    result = await session.execute(query)
    access_pass = result.scalar_one_or_none()
    if not access_pass:
        raise NotFoundError()
    return access_pass


async def _require_reference(session: AsyncSession, model, raw: Optional[str], field: str, invalid: List[str]):
    ref_id = parse_id(raw)
    if ref_id is None:
        invalid.append(_FIELD_LABELS[field])
        return None
    instance = await session.get(model, ref_id)
    if instance is None:
        invalid.append(_FIELD_LABELS[field])
        return None
    return instance


def _check_window(valid_from, valid_to) -> None:
    if valid_from and valid_to and valid_from > valid_to:
        raise ValidationError("validFrom must not be after validTo", ["validFrom", "validTo"])


async def issue_pass(session: AsyncSession, encoder, request: IssuePassRequest, user) -> Pass:
    missing = [
        _FIELD_LABELS[field]
        for field in REQUIRED_ISSUE_FIELDS
        if getattr(request, field) is None
    ]
    if missing:
        raise MissingFieldsError(missing)

    invalid: List[str] = []
    visitor = await _require_reference(session, Visitor, request.visitor, "visitor", invalid)
    host = await _require_reference(session, User, request.host, "host", invalid)
    if host is not None and not can_host(host):
        invalid.append("host")
        host = None
    appointment = None
    if request.appointment is not None:
        appointment = await _require_reference(session, Appointment, request.appointment, "appointment", invalid)
    if invalid:
        raise ValidationError("Unknown or malformed references", invalid)

    valid_from = as_utc(request.valid_from)
    valid_to = as_utc(request.valid_to)
    _check_window(valid_from, valid_to)

    pass_number = generate_pass_number()
    access_pass = Pass(
        visitor_id=visitor.id,
        host_id=host.id,
        appointment_id=appointment.id if appointment else None,
        pass_number=pass_number,
        qr_data=build_qr_data(pass_number),
        qr_state=QrState.PENDING_IMAGE.value,
        valid_from=valid_from,
        valid_to=valid_to,
        expected_exit_time=as_utc(request.expected_exit_time),
        status=PassStatus.ACTIVE.value,
        building=request.building,
        purpose=request.purpose,
        created_by=user.id,
    )

    # Phase 1: persist the record without its image
    session.add(access_pass)
    await session.commit()
    logger.info("pass_created", pass_id=str(access_pass.id), pass_number=pass_number)

    # Phase 2: attach the rendered QR image
    await _attach_qr_image(session, encoder, access_pass)

    logger.info("pass_issued", pass_id=str(access_pass.id), created_by=str(user.id))
    return await _load_pass(session, access_pass.id)


async def _attach_qr_image(session: AsyncSession, encoder, access_pass: Pass) -> None:
    try:
        qr_image = encoder.encode(access_pass.qr_data)
    except EncodingError:
        logger.error("pass_qr_encoding_failed", pass_id=str(access_pass.id))
        raise
    except Exception as e:
        logger.error("pass_qr_encoding_failed", pass_id=str(access_pass.id), error=str(e))
        raise EncodingError(f"QR encoding failed: {e}") from e

    access_pass.qr_image = qr_image
    access_pass.qr_state = QrState.COMPLETE.value
    access_pass.updated_at = utcnow()
    session.add(access_pass)
    await session.commit()


async def backfill_qr_images(session: AsyncSession, encoder) -> BackfillResult:
    """Render images for every pass left in the pending-image state."""
    result = await session.execute(
        select(Pass).where(Pass.qr_state == QrState.PENDING_IMAGE.value).order_by(Pass.created_at)
    )
    pending = result.scalars().all()

    completed = 0
    failed_ids: List[UUID] = []
    for access_pass in pending:
        try:
            await _attach_qr_image(session, encoder, access_pass)
            completed += 1
        except EncodingError:
            failed_ids.append(access_pass.id)

    logger.info("pass_qr_backfill", processed=len(pending), completed=completed, failed=len(failed_ids))
    return BackfillResult(
        processed=len(pending),
        completed=completed,
        failed=len(failed_ids),
        failed_ids=failed_ids,
    )


async def list_passes(session: AsyncSession, filters: PassFilters, user) -> Sequence[Pass]:
    query = _visible_to(_with_references(select(Pass)), user)

    if filters.host:
        host_id = parse_id(filters.host)
        if host_id is None:
            return []
        query = query.where(Pass.host_id == host_id)

    if filters.visitor:
        visitor_id = parse_id(filters.visitor)
        if visitor_id is None:
            return []
        query = query.where(Pass.visitor_id == visitor_id)

    if filters.status:
        query = query.where(Pass.status == filters.status.lower())

    query = query.order_by(Pass.created_at.desc())
    result = await session.execute(query)
    return result.scalars().all()


async def get_qr_image(session: AsyncSession, raw_id: str, user) -> Optional[str]:
    access_pass = await get_visible_pass(session, raw_id, user)
    return access_pass.qr_image


def _apply_status(access_pass: Pass, command: UpdateStatus) -> None:
    current = PassStatus(access_pass.status)
    target = command.status
    if target == current:
        return
    if target not in STATUS_TRANSITIONS[current]:
        raise ValidationError(
            f"Cannot change status from {current.value} to {target.value}", ["status"]
        )
    access_pass.status = target.value


_UPDATE_COMMANDS = TypeAdapter(PassUpdateCommand)


def parse_update_command(body: Any):
    """Validate a PUT body into one of the tagged update commands.

    Errors name the offending camelCase fields; a missing or unknown
    ``type`` is reported as ``type``.
    """
    try:
        return _UPDATE_COMMANDS.validate_python(body)
    except SchemaValidationError as e:
        fields: List[str] = []
        for error in e.errors():
            # loc starts with the command tag when the tag itself was accepted
            path = [str(part) for part in error["loc"][1:]]
            if path:
                name = ".".join(path)
            elif error["type"].startswith("union_tag"):
                name = "type"
            else:
                name = "body"
            if name not in fields:
                fields.append(name)
        raise ValidationError(None, fields) from e


async def update_pass(session: AsyncSession, raw_id: str, body: Any, user) -> Pass:
    # Unknown ids are 404 whatever the body holds
    access_pass = await get_visible_pass(session, raw_id, user)
    command = parse_update_command(body)

    if isinstance(command, UpdateStatus):
        _apply_status(access_pass, command)
    elif isinstance(command, UpdateValidity):
        valid_from = as_utc(command.valid_from)
        valid_to = as_utc(command.valid_to)
        _check_window(valid_from, valid_to)
        access_pass.valid_from = valid_from
        access_pass.valid_to = valid_to
    elif isinstance(command, UpdateLocation):
        access_pass.building = command.building
    elif isinstance(command, UpdateExpectedExit):
        access_pass.expected_exit_time = as_utc(command.expected_exit_time)
    elif isinstance(command, UpdateAppointment):
        if command.appointment is not None:
            appointment = await session.get(Appointment, command.appointment)
            if appointment is None:
                raise ValidationError("Unknown appointment", ["appointment"])
        access_pass.appointment_id = command.appointment
    else:
        raise ValidationError("Unsupported update", ["type"])

    access_pass.updated_at = utcnow()
    session.add(access_pass)
    await session.commit()
    logger.info("pass_updated", pass_id=str(access_pass.id), command=command.type)

    return await _load_pass(session, access_pass.id)


async def delete_pass(session: AsyncSession, raw_id: str, user) -> PassRead:
    access_pass = await get_visible_pass(session, raw_id, user)
    snapshot = PassRead.model_validate(access_pass)

    await session.execute(sa_delete(CheckLog).where(CheckLog.pass_id == access_pass.id))
    await session.delete(access_pass)
    await session.commit()
    logger.info("pass_deleted", pass_id=str(snapshot.id), deleted_by=str(user.id))
    return snapshot
