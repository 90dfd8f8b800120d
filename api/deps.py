"""Shared router dependencies.

The gateway authenticates the caller and forwards the user in the
``X-User-Id`` / ``X-User-Role`` headers; routers only read them.
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header

from domain.capabilities import Capability, CurrentUser, Role, has_capability
from domain.errors import AuthenticationError, PermissionDeniedError


def get_current_user(
    x_user_id: Optional[str] = Header(None, description="Authenticated user ID"),
    x_user_role: Optional[str] = Header(None, description="Authenticated user role"),
) -> CurrentUser:
    if not x_user_id or not x_user_role:
        raise AuthenticationError()
    try:
        return CurrentUser(id=UUID(x_user_id), role=Role(x_user_role.lower()))
    except ValueError:
        raise AuthenticationError("Invalid user context")


def require(capability: Capability):
    """Dependency factory: the caller's role must grant ``capability``."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_capability(user.role, capability):
            raise PermissionDeniedError(f"Role '{user.role.value}' cannot {capability.value}")
        return user

    return dependency
