"""
backend/rbac.py

Permission catalog and role inheritance for the investor backend.

The catalog below is the single source of truth for permissions. Clients may
mirror PERMISSION_CATALOG for display, but authorization is only ever decided
from resolve_permissions() on the server.

Role inheritance: investor < project_admin < admin, super_admin holds everything.

Pure Python logic - no FastAPI imports, no database access.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from backend.models import UserRole


# ============================================================================
# Permission Catalog
# ============================================================================

class Permission(str, Enum):
    """Available permissions in the investor app."""

    # Portfolio
    VIEW_PORTFOLIO = "view_portfolio"
    VIEW_INVESTMENTS = "view_investments"
    VIEW_REPORTS = "view_reports"
    VIEW_ANALYTICS = "view_analytics"

    # Project management
    CREATE_PROJECT = "create_project"
    VIEW_PROJECT_DETAILS = "view_project_details"
    EDIT_PROJECT = "edit_project"
    DELETE_PROJECT = "delete_project"

    # Investor management
    ADD_INVESTOR = "add_investor"
    REMOVE_INVESTOR = "remove_investor"
    VIEW_INVESTOR_LIST = "view_investor_list"

    # Approvals
    VOTE_ON_MODIFICATIONS = "vote_on_modifications"
    CREATE_MODIFICATION = "create_modification"
    VIEW_APPROVAL_CHAIN = "view_approval_chain"

    # Profile
    VIEW_PROFILE = "view_profile"
    EDIT_PROFILE = "edit_profile"
    VIEW_SETTINGS = "view_settings"

    # Admin
    VIEW_ADMIN_DASHBOARD = "view_admin_dashboard"
    MANAGE_USERS = "manage_users"


PERMISSION_CATALOG: FrozenSet[str] = frozenset(p.value for p in Permission)


# ============================================================================
# Role to Permissions Mapping (direct grants, before inheritance)
# ============================================================================

_ROLE_PERMISSIONS: dict[str, FrozenSet[str]] = {
    UserRole.guest.value: frozenset(),
    UserRole.investor.value: frozenset({
        Permission.VIEW_PORTFOLIO.value,
        Permission.VIEW_INVESTMENTS.value,
        Permission.VIEW_REPORTS.value,
        Permission.VIEW_ANALYTICS.value,
        Permission.CREATE_PROJECT.value,
        Permission.VIEW_PROJECT_DETAILS.value,
        Permission.VOTE_ON_MODIFICATIONS.value,
        Permission.VIEW_APPROVAL_CHAIN.value,
        Permission.VIEW_PROFILE.value,
        Permission.EDIT_PROFILE.value,
        Permission.VIEW_SETTINGS.value,
    }),
    UserRole.project_admin.value: frozenset({
        # Management on top of the inherited investor set
        Permission.ADD_INVESTOR.value,
        Permission.REMOVE_INVESTOR.value,
        Permission.VIEW_INVESTOR_LIST.value,
        Permission.EDIT_PROJECT.value,
        Permission.CREATE_MODIFICATION.value,
    }),
    UserRole.admin.value: frozenset({
        Permission.VIEW_ADMIN_DASHBOARD.value,
        Permission.MANAGE_USERS.value,
    }),
    UserRole.super_admin.value: PERMISSION_CATALOG,
}

# Grants outside the catalog would be silently ungrantable; catch them at import
for _role, _perms in _ROLE_PERMISSIONS.items():
    _unknown = _perms - PERMISSION_CATALOG
    if _unknown:
        raise ValueError(f"Role {_role!r} grants permissions outside the catalog: {sorted(_unknown)}")

ROLE_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType(_ROLE_PERMISSIONS)

# Which roles inherit the full permission set of another role
ROLE_INHERITANCE: Mapping[str, tuple] = MappingProxyType({
    UserRole.project_admin.value: (UserRole.investor.value,),
    UserRole.admin.value: (UserRole.investor.value, UserRole.project_admin.value),
    UserRole.super_admin.value: (UserRole.investor.value, UserRole.project_admin.value),
})


# ============================================================================
# Resolution
# ============================================================================

def resolve_permissions(role: Optional[str]) -> FrozenSet[str]:
    """
    Get all permissions for a role including inherited ones.

    Args:
        role: Role name (e.g., "investor", "project_admin")

    Returns:
        Frozen set of permission strings. super_admin always receives the
        whole catalog. Unknown or missing roles get an empty set.
    """
    if isinstance(role, Enum):
        role = role.value

    if role == UserRole.super_admin.value:
        return PERMISSION_CATALOG

    if role not in ROLE_PERMISSIONS:
        return frozenset()

    permissions = set(ROLE_PERMISSIONS[role])
    for parent in ROLE_INHERITANCE.get(role, ()):
        permissions |= ROLE_PERMISSIONS[parent]
    return frozenset(permissions)


def has_permission(role: Optional[str], permission: str) -> bool:
    """
    Check if a role holds a permission after inheritance.

    Returns False for unknown roles or permissions.
    """
    if isinstance(permission, Enum):
        permission = permission.value
    return permission in resolve_permissions(role)
