"""Visitors API - visitor profiles"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from api.deps import require
from domain.capabilities import Capability, CurrentUser
from domain.errors import NotFoundError, ValidationError
from domain.models import Pass, Visitor
from domain.schemas import VisitorCreate, VisitorRead, VisitorUpdate
from domain.services.passes import parse_id
from domain.timeutils import utcnow
from infrastructure.database import get_session

router = APIRouter()


async def _get_visitor(session: AsyncSession, visitor_id: str) -> Visitor:
    parsed = parse_id(visitor_id)
    visitor = await session.get(Visitor, parsed) if parsed else None
    if not visitor:
        raise NotFoundError("Visitor not found")
    return visitor


@router.get("", response_model=List[VisitorRead])
async def list_visitors(
    user: CurrentUser = Depends(require(Capability.MANAGE_VISITORS)),
    session: AsyncSession = Depends(get_session),
    name: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
):
    """List visitors, newest first"""
    query = select(Visitor)

    if name:
        query = query.where(Visitor.name.ilike(f"%{name}%"))

    query = query.order_by(Visitor.created_at.desc()).offset(skip).limit(limit)
    result = await session.execute(query)
    return [VisitorRead.model_validate(v) for v in result.scalars().all()]


@router.post("", response_model=VisitorRead, status_code=201)
async def create_visitor(
    visitor: VisitorCreate,
    user: CurrentUser = Depends(require(Capability.MANAGE_VISITORS)),
    session: AsyncSession = Depends(get_session),
):
    """Register a new visitor"""
    db_visitor = Visitor(**visitor.model_dump(), created_by=user.id)
    session.add(db_visitor)
    await session.commit()
    await session.refresh(db_visitor)
    return VisitorRead.model_validate(db_visitor)


@router.get("/{visitor_id}", response_model=VisitorRead)
async def get_visitor(
    visitor_id: str,
    user: CurrentUser = Depends(require(Capability.MANAGE_VISITORS)),
    session: AsyncSession = Depends(get_session),
):
    return VisitorRead.model_validate(await _get_visitor(session, visitor_id))


@router.patch("/{visitor_id}", response_model=VisitorRead)
async def update_visitor(
    visitor_id: str,
    visitor_update: VisitorUpdate,
    user: CurrentUser = Depends(require(Capability.MANAGE_VISITORS)),
    session: AsyncSession = Depends(get_session),
):
    """Update a visitor profile"""
    db_visitor = await _get_visitor(session, visitor_id)

    update_data = visitor_update.model_dump(exclude_unset=True)
    if "name" in update_data and not update_data["name"]:
        raise ValidationError("name cannot be empty", ["name"])
    for key, value in update_data.items():
        setattr(db_visitor, key, value)
    db_visitor.updated_at = utcnow()

    session.add(db_visitor)
    await session.commit()
    await session.refresh(db_visitor)
    return VisitorRead.model_validate(db_visitor)


@router.delete("/{visitor_id}", response_model=VisitorRead)
async def delete_visitor(
    visitor_id: str,
    user: CurrentUser = Depends(require(Capability.MANAGE_VISITORS)),
    session: AsyncSession = Depends(get_session),
):
    """Delete a visitor that no pass refers to"""
    db_visitor = await _get_visitor(session, visitor_id)

    in_use = await session.execute(select(Pass.id).where(Pass.visitor_id == db_visitor.id).limit(1))
    if in_use.first():
        raise ValidationError("Visitor still has passes", ["visitor"])

    snapshot = VisitorRead.model_validate(db_visitor)
    await session.delete(db_visitor)
    await session.commit()
    return snapshot
