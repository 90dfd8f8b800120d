"""Security desk scans: check-in / check-out against a pass QR payload."""

from __future__ import annotations

import json
from typing import Optional, Sequence

import structlog
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from domain.errors import NotFoundError, ValidationError
from domain.models import CheckLog, Pass, PassStatus
from domain.schemas import CheckLogRead, PassRead, ScanRequest, ScanResult
from domain.services.passes import parse_id
from domain.timeutils import as_utc, utcnow

logger = structlog.get_logger()


def pass_number_from_qr(qr_data: str) -> str:
    """Accept the JSON payload printed in the QR or a bare pass number."""
    raw = qr_data.strip()
    try:
        payload = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(payload, dict) and payload.get("passNumber"):
        return str(payload["passNumber"])
    raise ValidationError("QR payload does not contain a pass number", ["qrData"])


def _check_in(access_pass: Pass, now, building: Optional[str]) -> None:
    if access_pass.status != PassStatus.ACTIVE.value:
        raise ValidationError(f"Pass is {access_pass.status}", ["qrData"])
    if access_pass.valid_from and now < as_utc(access_pass.valid_from):
        raise ValidationError("Pass is not valid yet", ["qrData"])
    if access_pass.valid_to and now > as_utc(access_pass.valid_to):
        raise ValidationError("Pass has expired", ["qrData"])
    if access_pass.entry_time and not access_pass.exit_time:
        raise ValidationError("Visitor is already checked in", ["action"])

    access_pass.entry_time = now
    access_pass.exit_time = None
    if building:
        access_pass.building = building


def _check_out(access_pass: Pass, now) -> None:
    if access_pass.status != PassStatus.ACTIVE.value or not access_pass.entry_time:
        raise ValidationError("Visitor is not checked in", ["action"])

    access_pass.exit_time = now
    access_pass.status = PassStatus.CHECKED_OUT.value


async def scan_pass(session: AsyncSession, request: ScanRequest, user) -> ScanResult:
    pass_number = pass_number_from_qr(request.qr_data)
    result = await session.execute(select(Pass).where(Pass.pass_number == pass_number))
    access_pass = result.scalar_one_or_none()
    if not access_pass:
        raise NotFoundError()

    now = utcnow()
    if request.action == "check_in":
        _check_in(access_pass, now, request.building)
    else:
        _check_out(access_pass, now)
    access_pass.updated_at = now

    log = CheckLog(
        pass_id=access_pass.id,
        action=request.action,
        building=request.building or access_pass.building,
        performed_by=user.id,
        created_at=now,
    )
    session.add(access_pass)
    session.add(log)
    await session.commit()
    logger.info("pass_scanned", pass_id=str(access_pass.id), action=request.action, performed_by=str(user.id))

    reloaded = await session.execute(
        select(Pass)
        .where(Pass.id == access_pass.id)
        .options(selectinload(Pass.visitor), selectinload(Pass.host), selectinload(Pass.appointment))
        .execution_options(populate_existing=True)
    )
    return ScanResult(
        check_log=CheckLogRead.model_validate(log),
        access_pass=PassRead.model_validate(reloaded.scalar_one()),
    )


async def list_check_logs(
    session: AsyncSession,
    raw_pass_id: Optional[str] = None,
    action: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> Sequence[CheckLog]:
    query = select(CheckLog)

    if raw_pass_id:
        pass_id = parse_id(raw_pass_id)
        if pass_id is None:
            return []
        query = query.where(CheckLog.pass_id == pass_id)

    if action:
        query = query.where(CheckLog.action == action)

    query = query.order_by(CheckLog.created_at.desc()).offset(skip).limit(limit)
    result = await session.execute(query)
    return result.scalars().all()
