"""Check logs API - security desk scans and the check-in/out history"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from api.deps import require
from domain.capabilities import Capability, CurrentUser
from domain.schemas import CheckLogRead, ScanRequest, ScanResult
from domain.services import checkins
from infrastructure.database import get_session

router = APIRouter()


@router.post("/scan", response_model=ScanResult, status_code=201)
async def scan_pass(
    request: ScanRequest,
    user: CurrentUser = Depends(require(Capability.SCAN_PASSES)),
    session: AsyncSession = Depends(get_session),
):
    """Check a visitor in or out from the scanned QR payload"""
    return await checkins.scan_pass(session, request, user)


@router.get("", response_model=List[CheckLogRead])
async def list_check_logs(
    user: CurrentUser = Depends(require(Capability.VIEW_CHECK_LOGS)),
    session: AsyncSession = Depends(get_session),
    pass_id: Optional[str] = Query(None, alias="pass", description="Filter by pass ID"),
    action: Optional[str] = Query(None, description="check_in or check_out"),
    skip: int = 0,
    limit: int = Query(100, le=500),
):
    """List check logs, newest first"""
    logs = await checkins.list_check_logs(session, pass_id, action, skip, limit)
    return [CheckLogRead.model_validate(log) for log in logs]
