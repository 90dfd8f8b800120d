"""Users API - staff accounts and the host directory"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from api.deps import require
from domain.capabilities import HOST_ROLES, Capability, CurrentUser
from domain.errors import ValidationError
from domain.models import User
from domain.schemas import UserCreate, UserRead
from infrastructure.database import get_session

router = APIRouter()


@router.get("", response_model=List[UserRead])
async def list_users(
    user: CurrentUser = Depends(require(Capability.MANAGE_USERS)),
    session: AsyncSession = Depends(get_session),
    role: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
):
    """List staff accounts"""
    query = select(User)
    if role:
        query = query.where(User.role == role.lower())

    query = query.order_by(User.name).offset(skip).limit(limit)
    result = await session.execute(query)
    return [UserRead.model_validate(u) for u in result.scalars().all()]


@router.get("/hosts", response_model=List[UserRead])
async def list_hosts(
    user: CurrentUser = Depends(require(Capability.MANAGE_PASSES)),
    session: AsyncSession = Depends(get_session),
):
    """Active users that can host a visitor"""
    query = select(User).where(
        User.is_active == True,  # noqa: E712
        User.role.in_([role.value for role in HOST_ROLES]),
    ).order_by(User.name)
    result = await session.execute(query)
    return [UserRead.model_validate(u) for u in result.scalars().all()]


@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    payload: UserCreate,
    user: CurrentUser = Depends(require(Capability.MANAGE_USERS)),
    session: AsyncSession = Depends(get_session),
):
    """Create a staff account"""
    existing = await session.execute(select(User).where(User.email == payload.email.lower()))
    if existing.scalar_one_or_none():
        raise ValidationError("Email already registered", ["email"])

    db_user = User(
        name=payload.name,
        email=payload.email.lower(),
        role=payload.role.value,
        department=payload.department,
        phone=payload.phone,
    )
    session.add(db_user)
    await session.commit()
    await session.refresh(db_user)
    return UserRead.model_validate(db_user)
