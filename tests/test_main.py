"""
Tests for the FastAPI application: health, error envelopes, startup.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from tests.factories import make_user
from tussles.core.config import Settings
from tussles.core.security import create_access_token
from tussles.database.models.user import UserRole
from tussles.main import create_app


# ============================================================================
# Health and routing
# ============================================================================


class TestHealth:
    def test_health(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ok", "message": "Tussles API is running"}

    def test_request_id_echoed(self, test_client: TestClient):
        response = test_client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, test_client: TestClient):
        response = test_client.get("/health")
        assert response.headers["X-Request-ID"]

    def test_unknown_route_envelope(self, test_client: TestClient):
        response = test_client.get("/api/unknown")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Endpoint not found"


# ============================================================================
# Degraded startup
# ============================================================================


class TestDegradedStartup:
    def test_starts_without_configuration(self):
        app = create_app(Settings(_env_file=None, environment="test"))

        with TestClient(app, raise_server_exceptions=False) as client:
            assert app.state.backend is not None
            assert not app.state.backend.configured
            assert client.get("/health").status_code == status.HTTP_200_OK

        assert app.state.backend is None

    def test_token_checked_before_store(self):
        app = create_app(Settings(_env_file=None, environment="test", service_key="k"))

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get(
                "/api/orders", headers={"Authorization": "Bearer not-a-token"}
            )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_valid_token_on_degraded_store_is_500(self):
        settings = Settings(_env_file=None, environment="test", service_key="k")
        app = create_app(settings)
        token = create_access_token(uuid.uuid4(), settings=settings)

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get(
                "/api/orders", headers={"Authorization": f"Bearer {token}"}
            )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["message"] == "Internal server error"


# ============================================================================
# Authentication dependency
# ============================================================================


class TestCurrentUser:
    """Token verification and profile loading through the real dependency."""

    @pytest.fixture
    def user_repository(self, app):
        app.state.backend.session_factory = MagicMock(return_value=AsyncMock())
        repo = AsyncMock()
        with patch("tussles.api.deps.UserRepository", return_value=repo):
            yield repo

    def _get(self, app, token):
        return TestClient(app, raise_server_exceptions=False).get(
            "/api/orders", headers={"Authorization": f"Bearer {token}"}
        )

    def test_profile_not_found(self, app, settings, user_repository):
        user_repository.get.return_value = None

        response = self._get(app, create_access_token(uuid.uuid4(), settings=settings))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "User profile not found"

    def test_inactive_profile_forbidden(self, app, settings, user_repository):
        user = make_user(UserRole.EMPLOYEE, is_active=False)
        user_repository.get.return_value = user

        response = self._get(app, create_access_token(user.id, settings=settings))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_authenticated_listing(self, app, settings, user_repository, order_service):
        user = make_user(UserRole.EMPLOYEE)
        user_repository.get.return_value = user
        order_service.list_orders.return_value = []

        response = self._get(app, create_access_token(user.id, settings=settings))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "message": None, "data": []}
        assert order_service.list_orders.call_args.args[0] is user
        user_repository.get.assert_awaited_once_with(user.id)
