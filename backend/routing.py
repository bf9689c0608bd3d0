"""
backend/routing.py

Route registration for the investor API.

Routes are declared up front as RouteSpec entries. build_router() wires each
one with:
- the requirement gate (role check, then permission check) or, for public
  routes, the optional viewer
- PrivacyMaskingRoute, which masks the JSON body after the handler returns

Requirements are plain configuration attached at registration time; nothing
is looked up on the handler at request time.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from backend.auth_context import get_optional_viewer
from backend.dependencies import require_route
from backend.models import RouteRequirement
from backend.privacy import mask

logger = logging.getLogger(__name__)


class PrivacyMaskingRoute(APIRoute):
    """
    APIRoute that runs the privacy masking engine over JSON responses.

    The viewer is read from request.state.viewer, which the auth
    dependencies set while the handler's dependencies are solved. Without a
    viewer, or for non-JSON responses, the response is returned untouched.
    """

    def get_route_handler(self) -> Callable:
        original_handler = super().get_route_handler()

        async def masking_handler(request: Request) -> Response:
            response = await original_handler(request)

            viewer = getattr(request.state, "viewer", None)
            if viewer is None or not isinstance(response, JSONResponse):
                return response

            try:
                body = json.loads(response.body)
            except ValueError:
                logger.error("[PRIVACY] Response body is not valid JSON, skipping mask: path=%s", request.url.path)
                return response

            masked = mask(body, viewer)
            if masked is body:
                return response

            response.body = response.render(masked)
            response.headers["content-length"] = str(len(response.body))
            return response

        return masking_handler


@dataclass(frozen=True)
class RouteSpec:
    """One entry of the declarative route table."""
    path: str
    endpoint: Callable[..., Any]
    methods: Sequence[str] = ("GET",)
    requirement: RouteRequirement = field(default_factory=RouteRequirement)
    public: bool = False
    name: Optional[str] = None
    summary: Optional[str] = None
    response_model: Any = None


def build_router(routes: Sequence[RouteSpec], *, prefix: str = "", tags: Optional[List[str]] = None) -> APIRouter:
    """
    Build an APIRouter from a route table.

    Authenticated routes get Depends(require_route(route.requirement)), even when
    the requirement is empty, so every non-public route needs a valid token.
    Public routes must not declare a requirement.
    """
    router = APIRouter(prefix=prefix, tags=tags, route_class=PrivacyMaskingRoute)

    for route in routes:
        if route.public:
            if route.requirement.required_roles or route.requirement.required_permissions:
                raise ValueError(f"Public route {route.path} cannot declare roles or permissions")
            dependencies = [Depends(get_optional_viewer)]
        else:
            dependencies = [Depends(require_route(route.requirement))]

        router.add_api_route(
            route.path,
            route.endpoint,
            methods=list(route.methods),
            dependencies=dependencies,
            name=route.name,
            summary=route.summary,
            response_model=route.response_model,
        )

    return router
