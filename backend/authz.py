"""
backend/authz.py

Role and permission gates that run before a route handler.

Both gates share the same contract:
- return True when the route is unrestricted on that axis or the viewer passes
- return False when there is no viewer role to check (fail closed)
- raise HTTPException(403) when a requirement exists and the viewer misses it

The two 403s carry different detail text so clients can tell a role failure
from a permission failure. Mapping False to a response is left to the caller
(see backend/dependencies.py).
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import HTTPException, status

from backend.models import UserRole, Viewer
from backend.rbac import resolve_permissions

logger = logging.getLogger(__name__)

ROLE_FORBIDDEN_DETAIL = "Insufficient role for this action"
PERMISSION_FORBIDDEN_DETAIL = "Insufficient permissions for this action"


def _role_satisfies(viewer_role: str, required_role: str) -> bool:
    # project_admin counts as admin for admin-protected routes
    if required_role == UserRole.admin.value:
        return viewer_role in (UserRole.admin.value, UserRole.project_admin.value)
    return viewer_role == required_role


def authorize_role(viewer: Optional[Viewer], required_roles: Optional[Iterable[str]]) -> bool:
    """
    Compare the viewer's role against the roles a route declares.

    Args:
        viewer: Viewer for this request, or None
        required_roles: Roles declared on the route (any one is enough)

    Returns:
        True if allowed, False if the viewer has no role at all

    Raises:
        HTTPException(403): If the viewer's role matches none of the required roles
    """
    required = [getattr(r, "value", r) for r in (required_roles or ())]
    if not required:
        return True

    if viewer is None or not viewer.role:
        logger.info("[AUTHZ] Role check without viewer role: required=%s", required)
        return False

    if viewer.role == UserRole.super_admin.value:
        return True

    if any(_role_satisfies(viewer.role, role) for role in required):
        logger.debug("[AUTHZ] Role granted: user_id=%s, role=%s", viewer.id, viewer.role)
        return True

    logger.info(
        "[AUTHZ] Insufficient role: user_id=%s, role=%s, required=%s",
        viewer.id, viewer.role, required,
    )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ROLE_FORBIDDEN_DETAIL)


def authorize_permission(viewer: Optional[Viewer], required_permissions: Optional[Iterable[str]]) -> bool:
    """
    Compare the viewer's resolved permissions against a route's permissions.

    A route listing several permissions is satisfied by any one of them.

    Raises:
        HTTPException(403): If the resolved set shares nothing with the required list
    """
    required = [getattr(p, "value", p) for p in (required_permissions or ())]
    if not required:
        return True

    if viewer is None or not viewer.role:
        logger.info("[AUTHZ] Permission check without viewer role: required=%s", required)
        return False

    # Never denied, and no need to resolve the catalog
    if viewer.role == UserRole.super_admin.value:
        return True

    granted = resolve_permissions(viewer.role)
    if granted.intersection(required):
        logger.debug("[AUTHZ] Permission granted: user_id=%s, role=%s", viewer.id, viewer.role)
        return True

    logger.info(
        "[AUTHZ] Insufficient permissions: user_id=%s, role=%s, required=%s",
        viewer.id, viewer.role, required,
    )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=PERMISSION_FORBIDDEN_DETAIL)
