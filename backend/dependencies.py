"""
backend/dependencies.py

Reusable FastAPI dependencies for role and permission enforcement.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, status

from backend.auth_context import require_viewer
from backend.authz import authorize_permission, authorize_role
from backend.models import RouteRequirement, Viewer

# Detail used when a gate returns False (viewer without a role)
FORBIDDEN_RESOURCE_DETAIL = "Forbidden resource"


def require_route(requirement: RouteRequirement) -> Callable:
    """
    FastAPI dependency factory enforcing a route's declared requirement.

    Runs the role gate first, then the permission gate. Either may reject
    the request before the handler executes.

    Usage in routes:
        @app.get(
            "/projects/{project_id}/investors",
            dependencies=[Depends(require_route(RouteRequirement(
                required_permissions=("view_investor_list",),
            )))],
        )

    Raises:
        HTTPException(403): If either gate denies the viewer
    """
    def _check_requirement(viewer: Viewer = Depends(require_viewer)) -> Viewer:
        if not authorize_role(viewer, requirement.required_roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_RESOURCE_DETAIL)
        if not authorize_permission(viewer, requirement.required_permissions):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_RESOURCE_DETAIL)
        return viewer

    return _check_requirement


def require_roles(*roles: str) -> Callable:
    """Shorthand for require_route with only required roles."""
    return require_route(RouteRequirement(required_roles=roles))


def require_permissions(*permissions: str) -> Callable:
    """Shorthand for require_route with only required permissions (any one suffices)."""
    return require_route(RouteRequirement(required_permissions=permissions))
