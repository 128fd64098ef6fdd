"""
Backend service handle.

The handle bundles the collaborators every request needs: the relational
store session factory, the object store and the settings used to verify
tokens. It is built once at process start and reaches handlers through
dependency injection.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tussles.core.config import Settings
from tussles.core.errors import UpstreamError
from tussles.core.logging import get_logger
from tussles.database.connection import (
    create_engine,
    create_session_factory,
    session_scope,
)
from tussles.services.storage.object_store import ObjectStore

logger = get_logger(__name__)


@dataclass
class Backend:
    """Collaborators shared by all requests."""

    settings: Settings
    object_store: ObjectStore
    engine: Optional[AsyncEngine] = None
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def configured(self) -> bool:
        return self.session_factory is not None and self.settings.service_key is not None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a transactional store session.

        Raises:
            UpstreamError: If the store is not configured
        """
        if self.session_factory is None:
            logger.error("Store access attempted on a degraded backend")
            raise UpstreamError("Backend store is not configured")

        async with session_scope(self.session_factory) as session:
            yield session

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connections closed and engine disposed")


def build_backend(settings: Settings) -> Backend:
    """
    Build the backend handle from settings.

    Missing configuration never raises: each missing variable is logged and
    the matching collaborator is left unconfigured.
    """
    if not settings.store_configured:
        logger.warning(
            "Missing backend store environment variables, running degraded",
            APP_DATABASE_URL="SET" if settings.database_url else "MISSING",
            APP_SERVICE_KEY="SET" if settings.service_key else "MISSING",
        )
    if not settings.storage_configured:
        logger.warning(
            "Missing object storage credentials, image uploads disabled",
            APP_STORAGE_ACCESS_KEY_ID="SET" if settings.storage_access_key_id else "MISSING",
            APP_STORAGE_SECRET_ACCESS_KEY="SET" if settings.storage_secret_access_key else "MISSING",
        )

    engine = None
    session_factory = None
    if settings.database_url is not None:
        try:
            engine = create_engine(settings)
            session_factory = create_session_factory(engine)
        except Exception as e:
            logger.error(
                "Failed to create database engine, running degraded",
                error=str(e),
                error_type=type(e).__name__,
            )
            engine = None
            session_factory = None

    return Backend(
        settings=settings,
        object_store=ObjectStore.from_settings(settings),
        engine=engine,
        session_factory=session_factory,
    )
