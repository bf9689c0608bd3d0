"""
backend/auth_context.py

Authentication context primitives for FastAPI dependency injection.

Contains:
- verify_token: JWT verification (tokens are issued by the auth service)
- viewer_from_claims: claims -> Viewer
- require_viewer: dependency for authenticated routes
- get_optional_viewer: dependency for public routes

Both dependencies record the resolved viewer on request.state.viewer so the
privacy masking route can read it after the handler has run.

This module MUST NOT import backend.main to avoid circular dependencies.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend import config
from backend.models import Viewer

logger = logging.getLogger(__name__)

# Security schemes: strict for protected routes, lenient for public ones
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


# ---------------------------------------------------------
# JWT Token Verification
# ---------------------------------------------------------
def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify JWT access token and return decoded payload.

    Raises:
        HTTPException(401): If token is expired or invalid
    """
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def viewer_from_claims(payload: Dict[str, Any]) -> Viewer:
    """
    Build a Viewer from verified token claims.

    Raises:
        HTTPException(401): If the subject claim is missing
    """
    subject = payload.get("sub")
    if not subject:
        logger.info("[AUTH] Missing sub in token payload")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    role = payload.get("role")
    return Viewer(
        id=str(subject),
        role=str(role) if role else None,
        email=payload.get("email"),
    )


# ---------------------------------------------------------
# Dependencies
# ---------------------------------------------------------
def require_viewer(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Viewer:
    """
    Auth dependency for protected routes.

    Usage:
        @app.get("/protected")
        def protected_route(viewer: Viewer = Depends(require_viewer)):
            ...

    Raises:
        HTTPException(401/403): If the bearer token is missing, expired or invalid
    """
    viewer = viewer_from_claims(verify_token(credentials.credentials))
    request.state.viewer = viewer

    if config.IS_DEV:
        logger.debug("[AUTH] Authenticated: user_id=%s, role=%s", viewer.id, viewer.role)
    return viewer


def get_optional_viewer(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[Viewer]:
    """
    Viewer for public routes: None when no token is sent or the token is unusable.
    """
    request.state.viewer = None
    if credentials is None:
        return None

    try:
        viewer = viewer_from_claims(verify_token(credentials.credentials))
    except HTTPException as exc:
        logger.debug("[AUTH] Ignoring unusable token on public route: %s", exc.detail)
        return None

    request.state.viewer = viewer
    return viewer
