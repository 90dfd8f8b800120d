"""Domain models for the visitor pass service"""
from .user import User
from .visitor import Visitor
from .appointment import Appointment
from .access_pass import Pass, PassStatus, QrState
from .check_log import CheckLog

__all__ = [
    "User",
    "Visitor",
    "Appointment",
    "Pass",
    "PassStatus",
    "QrState",
    "CheckLog",
]
