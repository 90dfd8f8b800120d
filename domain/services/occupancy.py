"""Live occupancy - who is inside each building right now.

Active passes are grouped by building and each visitor is classified by the
time left until the expected exit:

* no expected exit known      -> onTime
* exit time reached or passed -> overstay
* exit within the window      -> approachingExit
* otherwise                   -> onTime
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Optional

import structlog
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from domain.models import Pass, PassStatus
from domain.schemas import BuildingSummary, LiveOccupancyRead, VisitorDetail
from domain.timeutils import as_utc, utcnow

logger = structlog.get_logger()

UNKNOWN_BUILDING = "Unknown"
DEFAULT_APPROACHING_EXIT_MINUTES = 30

_COUNTERS = {
    "onTime": "on_time",
    "approachingExit": "approaching_exit",
    "overstay": "overstay",
}


def expected_exit_of(access_pass: Pass) -> Optional[datetime]:
    return access_pass.valid_to or access_pass.expected_exit_time


def classify(expected_exit: Optional[datetime], now: datetime, approaching_exit_minutes: int = DEFAULT_APPROACHING_EXIT_MINUTES) -> str:
    if expected_exit is None:
        return "onTime"

    diff_minutes = (as_utc(expected_exit) - as_utc(now)).total_seconds() / 60
    if diff_minutes <= 0:
        return "overstay"
    if diff_minutes <= approaching_exit_minutes:
        return "approachingExit"
    return "onTime"


def _purpose_of(access_pass: Pass) -> Optional[str]:
    if access_pass.purpose:
        return access_pass.purpose
    appointment = access_pass.appointment
    return appointment.purpose if appointment else None


def compute_live_occupancy(
    passes: Iterable[Pass],
    now: datetime,
    approaching_exit_minutes: int = DEFAULT_APPROACHING_EXIT_MINUTES,
) -> LiveOccupancyRead:
    """Aggregate a snapshot of active passes. Buildings keep first-seen order."""
    by_building: Dict[str, BuildingSummary] = {}

    for access_pass in passes:
        building = access_pass.building or UNKNOWN_BUILDING
        summary = by_building.get(building)
        if summary is None:
            summary = by_building[building] = BuildingSummary(building=building)

        expected_exit = expected_exit_of(access_pass)
        category = classify(expected_exit, now, approaching_exit_minutes)

        summary.total += 1
        counter = _COUNTERS[category]
        setattr(summary, counter, getattr(summary, counter) + 1)

        visitor = access_pass.visitor
        host = access_pass.host
        summary.visitors.append(
            VisitorDetail(
                id=access_pass.id,
                name=visitor.name if visitor else None,
                purpose=_purpose_of(access_pass),
                host=host.name if host else None,
                entry_time=access_pass.entry_time,
                expected_exit=expected_exit,
                category=category,
            )
        )

    return LiveOccupancyRead(generated_at=now, buildings=list(by_building.values()))


async def load_active_passes(session: AsyncSession, inside_only: bool = False):
    """Active passes; with ``inside_only`` just those checked in and not yet out."""
    query = (
        select(Pass)
        .where(Pass.status == PassStatus.ACTIVE.value)
        .options(
            selectinload(Pass.visitor),
            selectinload(Pass.host),
            selectinload(Pass.appointment),
        )
        .order_by(Pass.created_at)
    )
    if inside_only:
        query = query.where(Pass.entry_time.is_not(None), Pass.exit_time.is_(None))
    result = await session.execute(query)
    return result.scalars().all()


async def get_live_occupancy(
    session: AsyncSession,
    now: Optional[datetime] = None,
    approaching_exit_minutes: int = DEFAULT_APPROACHING_EXIT_MINUTES,
    inside_only: bool = False,
) -> LiveOccupancyRead:
    now = as_utc(now or utcnow())
    passes = await load_active_passes(session, inside_only)
    occupancy = compute_live_occupancy(passes, now, approaching_exit_minutes)
    logger.debug("live_occupancy_computed", passes=len(passes), buildings=len(occupancy.buildings))
    return occupancy
