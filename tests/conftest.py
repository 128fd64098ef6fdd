"""
Pytest configuration and shared test fixtures.

Provides settings with a known service key, in-memory users and
companies, a fixed clock, and a FastAPI test client whose auth and
service dependencies are overridden.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Generator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.factories import FIXED_NOW, make_company, make_user
from tussles.api.deps import (
    get_company_service,
    get_current_user,
    get_finance_service,
    get_order_service,
)
from tussles.core.config import Settings
from tussles.core.rate_limit import limiter
from tussles.database.models.company import Company
from tussles.database.models.user import User, UserRole
from tussles.main import create_app
from tussles.services.backend import Backend
from tussles.services.storage.object_store import ObjectStore


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        service_key="test-service-key",
        environment="test",
        database_url=None,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def owner_user() -> User:
    return make_user(UserRole.OWNER, salary=Decimal("4000.00"), name="Olivia Owner")


@pytest.fixture
def employee_user() -> User:
    return make_user(UserRole.EMPLOYEE, salary=Decimal("2000.00"), name="Evan Employee")


@pytest.fixture
def company() -> Company:
    return make_company()


@pytest.fixture
def s3_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def object_store(s3_client: MagicMock) -> ObjectStore:
    """Object store backed by a mocked boto3 client."""
    return ObjectStore(
        bucket="test-bucket",
        client=s3_client,
        public_base_url="https://files.example.com/public",
    )


@pytest.fixture
def order_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def company_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def finance_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def app(
    settings: Settings,
    object_store: ObjectStore,
    order_service: AsyncMock,
    company_service: AsyncMock,
    finance_service: AsyncMock,
) -> Generator[FastAPI, None, None]:
    """Application with service dependencies replaced by mocks."""
    limiter.reset()
    application = create_app(settings)
    application.state.backend = Backend(settings=settings, object_store=object_store)
    application.dependency_overrides[get_order_service] = lambda: order_service
    application.dependency_overrides[get_company_service] = lambda: company_service
    application.dependency_overrides[get_finance_service] = lambda: finance_service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def as_user(app: FastAPI) -> Callable[[Optional[User]], None]:
    """Authenticate every request as the given user."""

    def _login(user: Optional[User]) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return _login


@pytest.fixture
def test_client(app: FastAPI) -> TestClient:
    """
    Synchronous client. The lifespan is not entered, so the backend placed
    on ``app.state`` by the ``app`` fixture is the one requests see.
    """
    return TestClient(app, raise_server_exceptions=False)
