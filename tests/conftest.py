"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

import pytest

# Mandatory secret key for settings validation
os.environ.setdefault("SECRET_KEY", "test-secret-key")
# Keep test output readable
os.environ.setdefault("LOG_JSON", "false")


@pytest.fixture
def client():
    """TestClient with the lifespan running, so app.state services exist."""
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_auth_headers():
    from application.services.token_service import TokenService

    tokens = TokenService()

    def _make(user_id: str, name: str = None) -> dict:
        token = tokens.create_access_token(user_id, name=name or user_id)
        return {"Authorization": f"Bearer {token}"}

    return _make
