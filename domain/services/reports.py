"""Dashboard statistics"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from domain.capabilities import Capability, has_capability
from domain.models import CheckLog, Pass, PassStatus
from domain.schemas import SummaryRead
from domain.timeutils import as_utc, utcnow


async def _count(session: AsyncSession, query) -> int:
    result = await session.execute(query)
    return int(result.scalar_one() or 0)


async def get_summary(session: AsyncSession, user, now: Optional[datetime] = None) -> SummaryRead:
    """Pass totals (scoped to what the user may see) and today's check-ins/outs."""
    now = as_utc(now or utcnow())
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_day = start_of_day + timedelta(days=1)

    passes = select(func.count()).select_from(Pass)
    if not has_capability(user.role, Capability.VIEW_ALL_PASSES):
        passes = passes.where(Pass.created_by == user.id)

    checks_today = (
        select(func.count())
        .select_from(CheckLog)
        .where(CheckLog.created_at >= start_of_day, CheckLog.created_at < end_of_day)
    )

    return SummaryRead(
        total_passes=await _count(session, passes),
        active_passes=await _count(session, passes.where(Pass.status == PassStatus.ACTIVE.value)),
        total_check_ins=await _count(session, checks_today.where(CheckLog.action == "check_in")),
        total_check_outs=await _count(session, checks_today.where(CheckLog.action == "check_out")),
    )
