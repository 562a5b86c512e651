import base64
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from app.main import app

client = TestClient(app)


def basic(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def auth_enabled():
    settings = MagicMock(auth_username="admin", auth_password=SecretStr("hunter2"))
    with patch("app.core.auth.get_settings", return_value=settings):
        yield


def test_disabled_by_default():
    """Test requests pass when no credentials are configured."""
    assert client.get("/api/providers").status_code == 200


def test_missing_credentials_rejected(auth_enabled):
    """Test a request without credentials gets a JSON 401."""
    response = client.get("/api/providers")

    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"
    assert "Basic" in response.headers["WWW-Authenticate"]


@pytest.mark.parametrize(
    "headers",
    [
        basic("admin", "wrong"),
        basic("root", "hunter2"),
        {"Authorization": "Bearer abc"},
        {"Authorization": "Basic !!notbase64"},
        {"Authorization": "Basic " + base64.b64encode(b"nocolon").decode()},
    ],
)
def test_bad_credentials_rejected(auth_enabled, headers):
    """Test wrong or malformed credentials are rejected."""
    assert client.get("/api/providers", headers=headers).status_code == 401


def test_valid_credentials_accepted(auth_enabled):
    """Test correct credentials are accepted."""
    response = client.get("/api/providers", headers=basic("admin", "hunter2"))
    assert response.status_code == 200


def test_health_is_public(auth_enabled):
    """Test the health check stays reachable without credentials."""
    assert client.get("/api/health").status_code == 200
