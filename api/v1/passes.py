"""Passes API - issuance, lookup, updates and live occupancy"""
from typing import Any, List, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from api.deps import require
from config import settings as app_settings
from domain.capabilities import Capability, CurrentUser
from domain.errors import OccupancyUnavailableError
from domain.schemas import (
    BackfillResult,
    IssuePassRequest,
    LiveOccupancyRead,
    PassFilters,
    PassRead,
    QrImageRead,
)
from domain.services import occupancy
from domain.services import passes as pass_service
from infrastructure.database import get_session
from infrastructure.qr import QrEncoder, get_qr_encoder

logger = structlog.get_logger()

router = APIRouter()


@router.get("", response_model=List[PassRead])
async def list_passes(
    host: Optional[str] = None,
    visitor: Optional[str] = None,
    status: Optional[str] = None,
    user: CurrentUser = Depends(require(Capability.VIEW_PASSES)),
    session: AsyncSession = Depends(get_session),
):
    """List passes, newest first. Non-admins only see passes they issued."""
    filters = PassFilters(host=host, visitor=visitor, status=status)
    found = await pass_service.list_passes(session, filters, user)
    return [PassRead.model_validate(p) for p in found]


@router.get("/live", response_model=LiveOccupancyRead)
async def get_live_visitors(
    inside_only: bool = Query(False, alias="insideOnly", description="Only visitors checked in and not yet out"),
    user: CurrentUser = Depends(require(Capability.VIEW_LIVE_OCCUPANCY)),
    session: AsyncSession = Depends(get_session),
):
    """Who is inside right now, per building"""
    try:
        return await occupancy.get_live_occupancy(
            session,
            approaching_exit_minutes=app_settings.approaching_exit_minutes,
            inside_only=inside_only,
        )
    except SQLAlchemyError as e:
        logger.error("live_occupancy_failed", error=str(e))
        raise OccupancyUnavailableError() from e


@router.post("/qr/backfill", response_model=BackfillResult)
async def backfill_qr_images(
    user: CurrentUser = Depends(require(Capability.VIEW_ALL_PASSES)),
    session: AsyncSession = Depends(get_session),
    encoder: QrEncoder = Depends(get_qr_encoder),
):
    """Render QR images for passes whose issuance stopped before the image was stored"""
    return await pass_service.backfill_qr_images(session, encoder)


@router.post("", response_model=PassRead, status_code=201)
async def create_pass(
    request: IssuePassRequest,
    user: CurrentUser = Depends(require(Capability.MANAGE_PASSES)),
    session: AsyncSession = Depends(get_session),
    encoder: QrEncoder = Depends(get_qr_encoder),
):
    """Issue a new pass with its QR payload and image"""
    access_pass = await pass_service.issue_pass(session, encoder, request, user)
    return PassRead.model_validate(access_pass)


@router.get("/{pass_id}", response_model=PassRead)
async def get_pass(
    pass_id: str,
    user: CurrentUser = Depends(require(Capability.VIEW_PASSES)),
    session: AsyncSession = Depends(get_session),
):
    access_pass = await pass_service.get_visible_pass(session, pass_id, user)
    return PassRead.model_validate(access_pass)


@router.put("/{pass_id}", response_model=PassRead)
async def update_pass(
    pass_id: str,
    body: Any = Body(None),
    user: CurrentUser = Depends(require(Capability.MANAGE_PASSES)),
    session: AsyncSession = Depends(get_session),
):
    """Apply one update command (status, validity, location, expectedExit, appointment)"""
    access_pass = await pass_service.update_pass(session, pass_id, body, user)
    return PassRead.model_validate(access_pass)


@router.delete("/{pass_id}", response_model=PassRead)
async def delete_pass(
    pass_id: str,
    user: CurrentUser = Depends(require(Capability.MANAGE_PASSES)),
    session: AsyncSession = Depends(get_session),
):
    """Hard delete; returns the last state of the pass"""
    return await pass_service.delete_pass(session, pass_id, user)


@router.get("/{pass_id}/qr", response_model=QrImageRead)
async def get_pass_qr(
    pass_id: str,
    user: CurrentUser = Depends(require(Capability.VIEW_PASSES)),
    session: AsyncSession = Depends(get_session),
):
    qr_image = await pass_service.get_qr_image(session, pass_id, user)
    return QrImageRead(qr_image=qr_image)
