# ---------------------------------------------------------
# backend/main.py
# Investor backend - authorization & privacy pipeline
#
# Run: uvicorn backend.main:app --reload (from repo root)
#
# - /health                    : liveness (public)
# - /auth/me                   : the viewer behind the bearer token
# - /auth/my-permissions       : server-resolved permissions for the viewer
# - /auth/permissions/catalog  : full permission catalog (public, display only)
#
# Feature routers (projects, spendings, ...) plug in through
# backend.routing.build_router so they get the same gates and masking.
# ---------------------------------------------------------

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Callable, Dict, List

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.auth_context import require_viewer
from backend.config import CORS_ORIGINS, IS_PROD, configure_logging
from backend.models import Viewer
from backend.rbac import PERMISSION_CATALOG, ROLE_PERMISSIONS, resolve_permissions
from backend.routing import RouteSpec, build_router

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Routes
# ---------------------------------------------------------
def health() -> Dict[str, str]:
    return {"status": "ok"}


def get_me(viewer: Viewer = Depends(require_viewer)) -> Dict[str, Any]:
    return {"id": viewer.id, "role": viewer.role, "email": viewer.email}


def get_my_permissions(viewer: Viewer = Depends(require_viewer)) -> Dict[str, Any]:
    """
    Server-computed permission set for the authenticated viewer.
    Clients should use this instead of computing permissions locally.
    """
    return {
        "role": viewer.role,
        "permissions": sorted(resolve_permissions(viewer.role)),
    }


def get_permission_catalog() -> Dict[str, Any]:
    """Catalog for UI mirroring. Display only - never authoritative client side."""
    return {
        "permissions": sorted(PERMISSION_CATALOG),
        "roles": {role: sorted(resolve_permissions(role)) for role in ROLE_PERMISSIONS},
    }


AUTH_ROUTES: List[RouteSpec] = [
    RouteSpec("/me", get_me, name="auth_me"),
    RouteSpec("/my-permissions", get_my_permissions, name="auth_my_permissions"),
    RouteSpec("/permissions/catalog", get_permission_catalog, public=True, name="auth_permission_catalog"),
]


# ---------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------
def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Investor Backend", version="0.1")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS if IS_PROD else ["*"],  # Restrict origins in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(build_router([RouteSpec("/health", health, public=True, name="health")]))
    app.include_router(build_router(AUTH_ROUTES, prefix="/auth", tags=["auth"]))

    @app.middleware("http")
    async def request_id_and_access_log(request: Request, call_next: Callable):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error", extra={"request_id": request_id})
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal error."},
                headers={"x-request-id": request_id},
            )

        response.headers["x-request-id"] = request_id
        logger.info(
            json.dumps(
                {
                    "event": "access",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": int((time.time() - start) * 1000),
                }
            )
        )
        return response

    return app


app = create_app()
