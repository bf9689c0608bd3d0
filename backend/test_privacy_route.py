"""
backend/test_privacy_route.py

End-to-end tests for routes built from the declarative route table:
gates run before the handler, masking runs after it.

Run:
    pytest backend/test_privacy_route.py -v
"""

import json
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from backend.models import RouteRequirement
from backend.rbac import Permission
from backend.routing import RouteSpec, build_router


PROJECT = {
    "id": "p1",
    "name": "Harbour Lofts",
    "investors": [
        {
            "id": "i1",
            "role": "investor",
            "projectId": "p1",
            "name": "Alice",
            "email": "alice@example.com",
            "totalInvested": 10000,
            "privacySettings": {"p1": {"isAnonymous": True, "displayName": "Silent Partner"}},
        },
        {
            "id": "i2",
            "role": "investor",
            "projectId": "p1",
            "name": "Bob",
            "email": "bob@example.com",
            "totalInvested": 5000,
            "privacySettings": {"p1": {"isAnonymous": False}},
        },
    ],
}

handler_calls = []


def get_project():
    handler_calls.append("project")
    return PROJECT


def get_public_project():
    return PROJECT


def get_report():
    return PlainTextResponse("Alice invested 10000")


@pytest.fixture(scope="module")
def client():
    routes = [
        RouteSpec(
            "/projects/p1",
            get_project,
            requirement=RouteRequirement(required_permissions=(Permission.VIEW_PROJECT_DETAILS,)),
        ),
        RouteSpec("/public/p1", get_public_project, public=True),
        RouteSpec("/reports/p1", get_report),
    ]
    app = FastAPI()
    app.include_router(build_router(routes, prefix="/api"))
    return TestClient(app)


def investors_of(response):
    assert response.status_code == 200
    return {inv["id"]: inv for inv in response.json()["investors"]}


class TestMaskedRoutes:
    def test_peer_sees_anonymous_projection(self, client, auth_header):
        investors = investors_of(client.get("/api/projects/p1", headers=auth_header("i2", "investor")))

        assert investors["i1"] == {
            "id": "i1",
            "name": "Silent Partner",
            "email": "••••••••@••••.com",
            "avatar": None,
            "totalInvested": None,
            "isAnonymous": True,
            "isSelf": False,
            "visibilityLevel": "anonymous",
        }
        assert investors["i2"]["isSelf"] is True

    def test_self_sees_own_record(self, client, auth_header):
        investors = investors_of(client.get("/api/projects/p1", headers=auth_header("i1", "investor")))

        assert investors["i1"]["name"] == "Alice"
        assert investors["i1"]["visibilityLevel"] == "full"
        assert investors["i2"]["visibilityLevel"] == "full"

    def test_project_admin_sees_identities(self, client, auth_header):
        investors = investors_of(client.get("/api/projects/p1", headers=auth_header("pa", "project_admin")))

        assert investors["i1"]["name"] == "Alice"
        assert investors["i1"]["isAnonymous"] is True
        assert investors["i1"]["visibilityLevel"] == "admin"

    def test_content_length_matches_masked_body(self, client, auth_header):
        response = client.get("/api/projects/p1", headers=auth_header("i2", "investor"))
        assert int(response.headers["content-length"]) == len(response.content)

    def test_public_route_without_token_is_untouched(self, client):
        response = client.get("/api/public/p1")
        assert response.status_code == 200
        assert response.json() == json.loads(json.dumps(PROJECT))

    def test_public_route_with_token_is_masked(self, client, auth_header):
        investors = investors_of(client.get("/api/public/p1", headers=auth_header("i2", "investor")))
        assert investors["i1"]["visibilityLevel"] == "anonymous"

    def test_public_route_ignores_bad_token(self, client):
        response = client.get("/api/public/p1", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 200
        assert response.json()["investors"][0]["name"] == "Alice"

    def test_non_json_response_passes_through(self, client, auth_header):
        response = client.get("/api/reports/p1", headers=auth_header("i2", "investor"))
        assert response.status_code == 200
        assert response.text == "Alice invested 10000"

    def test_forbidden_viewer_never_reaches_handler(self, client, auth_header):
        handler_calls.clear()

        response = client.get("/api/projects/p1", headers=auth_header("g1", "guest"))

        assert response.status_code == 403
        assert handler_calls == []

    def test_masking_failure_still_completes_request(self, client, auth_header):
        with patch("backend.privacy.visibility_for", side_effect=RuntimeError("mask failure")):
            response = client.get("/api/projects/p1", headers=auth_header("i2", "investor"))

        assert response.status_code == 200
        assert response.json()["investors"][0]["name"] == "Alice"


class TestBuildRouter:
    def test_public_route_cannot_declare_requirement(self):
        public_route = RouteSpec(
            "/x",
            get_public_project,
            public=True,
            requirement=RouteRequirement(required_roles=("admin",)),
        )
        with pytest.raises(ValueError):
            build_router([public_route])

    def test_authenticated_route_requires_token(self, client):
        response = client.get("/api/reports/p1")
        assert response.status_code in (401, 403)
