"""Role capability table.

Single source of truth for what each role may do. The API authorization
dependency checks capabilities from here, and ``GET /api/me`` derives the
dashboard navigation and quick actions from the same entries.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List
from uuid import UUID


class Role(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
    SECURITY = "security"


class Capability(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_LIVE_OCCUPANCY = "view_live_occupancy"
    MANAGE_VISITORS = "manage_visitors"
    MANAGE_APPOINTMENTS = "manage_appointments"
    MANAGE_PASSES = "manage_passes"
    VIEW_PASSES = "view_passes"
    VIEW_ALL_PASSES = "view_all_passes"
    SCAN_PASSES = "scan_passes"
    VIEW_CHECK_LOGS = "view_check_logs"
    VIEW_REPORTS = "view_reports"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.EMPLOYEE: frozenset({
        Capability.VIEW_DASHBOARD,
        Capability.VIEW_LIVE_OCCUPANCY,
        Capability.MANAGE_VISITORS,
        Capability.MANAGE_APPOINTMENTS,
        Capability.MANAGE_PASSES,
        Capability.VIEW_PASSES,
    }),
    Role.SECURITY: frozenset({
        Capability.VIEW_DASHBOARD,
        Capability.VIEW_LIVE_OCCUPANCY,
        Capability.VIEW_PASSES,
        Capability.SCAN_PASSES,
        Capability.VIEW_CHECK_LOGS,
    }),
}


# Roles that can host a visitor (pass and appointment hosts, host directory)
HOST_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.EMPLOYEE})


@dataclass(frozen=True)
class NavEntry:
    key: str
    label: str
    path: str
    capability: Capability


# Sidebar, in display order
NAVIGATION: List[NavEntry] = [
    NavEntry("dashboard", "Dashboard", "/dashboard", Capability.VIEW_DASHBOARD),
    NavEntry("visitors", "Visitors", "/visitors", Capability.MANAGE_VISITORS),
    NavEntry("appointments", "Appointments", "/appointments", Capability.MANAGE_APPOINTMENTS),
    NavEntry("passes", "Passes", "/passes", Capability.MANAGE_PASSES),
    NavEntry("scan", "Scan Pass", "/scan", Capability.SCAN_PASSES),
    NavEntry("checklogs", "Check Logs", "/checklogs", Capability.VIEW_CHECK_LOGS),
    NavEntry("reports", "Reports", "/reports", Capability.VIEW_REPORTS),
]

QUICK_ACTIONS: List[NavEntry] = [
    NavEntry("add_visitor", "Add Visitor", "/visitors", Capability.MANAGE_VISITORS),
    NavEntry("create_appointment", "Create Appointment", "/appointments", Capability.MANAGE_APPOINTMENTS),
    NavEntry("issue_pass", "Issue Pass", "/passes", Capability.MANAGE_PASSES),
    NavEntry("scan_pass", "Scan Pass", "/scan", Capability.SCAN_PASSES),
    NavEntry("view_reports", "View Reports", "/reports", Capability.VIEW_REPORTS),
]


def can_host(user) -> bool:
    """Active staff account whose role may host visitors."""
    return bool(user.is_active) and user.role in {role.value for role in HOST_ROLES}


def capabilities_for(role: Role) -> FrozenSet[Capability]:
    return ROLE_CAPABILITIES.get(Role(role), frozenset())


def has_capability(role: Role, capability: Capability) -> bool:
    return capability in capabilities_for(role)


def navigation_for(role: Role) -> List[NavEntry]:
    return [entry for entry in NAVIGATION if has_capability(role, entry.capability)]


def quick_actions_for(role: Role) -> List[NavEntry]:
    return [entry for entry in QUICK_ACTIONS if has_capability(role, entry.capability)]


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller as forwarded by the gateway."""

    id: UUID
    role: Role
