"""API v1 routers"""
from . import (
    appointments,
    checklogs,
    me,
    passes,
    reports,
    users,
    visitors,
)

__all__ = [
    "appointments",
    "checklogs",
    "me",
    "passes",
    "reports",
    "users",
    "visitors",
]
