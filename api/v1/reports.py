"""Reports API - dashboard statistics"""
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from api.deps import require
from domain.capabilities import Capability, CurrentUser
from domain.schemas import SummaryRead
from domain.services import reports
from infrastructure.database import get_session

router = APIRouter()


@router.get("/summary", response_model=SummaryRead)
async def get_summary(
    user: CurrentUser = Depends(require(Capability.VIEW_DASHBOARD)),
    session: AsyncSession = Depends(get_session),
):
    """Total and active passes plus today's check-ins and check-outs"""
    return await reports.get_summary(session, user)
