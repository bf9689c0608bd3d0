"""Shared fixtures for backend tests."""

import time

import jwt
import pytest

from backend import config


def generate_test_token(user_id: str, role: str = "investor", email: str = "", expires_in: int = 3600) -> str:
    """Generate a JWT signed with the configured secret."""
    payload = {
        "sub": user_id,
        "role": role,
        "email": email or f"{user_id}@example.com",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.ALGORITHM)


@pytest.fixture
def make_token():
    """Factory returning a signed token; expires_in < 0 gives an expired one."""
    return generate_test_token


@pytest.fixture
def auth_header():
    """Factory returning an Authorization header for a user id and role."""
    def _make(user_id: str, role: str = "investor") -> dict:
        return {"Authorization": f"Bearer {generate_test_token(user_id, role)}"}
    return _make
