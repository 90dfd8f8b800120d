"""Current user API - capabilities and dashboard navigation for the caller's role"""
from fastapi import APIRouter, Depends

from api.deps import get_current_user
from config import settings as app_settings
from domain.capabilities import CurrentUser, capabilities_for, navigation_for, quick_actions_for
from domain.schemas import MeRead, NavItem

router = APIRouter()


def _nav_items(entries):
    return [NavItem(key=e.key, label=e.label, path=e.path) for e in entries]


@router.get("", response_model=MeRead)
async def get_me(user: CurrentUser = Depends(get_current_user)):
    return MeRead(
        id=user.id,
        role=user.role,
        capabilities=sorted(c.value for c in capabilities_for(user.role)),
        navigation=_nav_items(navigation_for(user.role)),
        quick_actions=_nav_items(quick_actions_for(user.role)),
        live_poll_interval_seconds=app_settings.live_poll_interval_seconds,
    )
