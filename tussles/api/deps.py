"""
FastAPI dependencies for authentication, authorization and services.

The backend handle lives on ``app.state`` and is built once at startup;
each request opens one store session from it and the services below share
that session.
"""

from typing import Annotated, AsyncGenerator, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tussles.core.errors import AuthError, ForbiddenError, NotFoundError, UpstreamError
from tussles.core.logging import get_logger, set_user_id
from tussles.core.permissions import ensure_authorized
from tussles.core.security import decode_access_token
from tussles.database.models.user import User, UserRole
from tussles.services.backend import Backend
from tussles.services.companies.repository import CompanyRepository
from tussles.services.companies.service import CompanyService
from tussles.services.finance.service import FinanceService
from tussles.services.orders.service import OrderService
from tussles.services.users.repository import UserRepository

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_backend(request: Request) -> Backend:
    """Backend handle built by the application lifespan."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        logger.error("Request received before backend initialization")
        raise UpstreamError("Backend is not initialized")
    return backend


async def get_db(
    backend: Annotated[Backend, Depends(get_backend)],
) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped store session. Services commit their own writes before returning."""
    async with backend.session() as session:
        yield session


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    backend: Annotated[Backend, Depends(get_backend)],
) -> User:
    """
    Verify the bearer token and load the caller's profile.

    The token is checked before the store is touched, so a bad token is
    rejected even when the backend is degraded.

    Raises:
        AuthError: If the token is missing, invalid or expired
        NotFoundError: If the token's user has no profile
        ForbiddenError: If the profile is deactivated
    """
    if credentials is None or not credentials.credentials:
        logger.warning("Authentication failed: No credentials provided")
        raise AuthError("No token provided")

    user_id = decode_access_token(credentials.credentials, settings=backend.settings)

    async with backend.session() as session:
        user = await UserRepository(session).get(user_id)
    if user is None:
        logger.warning("Authentication failed: User not found", user_id=str(user_id))
        raise NotFoundError("User profile not found", user_id=str(user_id))

    if not user.is_active:
        logger.warning("Authentication failed: User account is inactive", user_id=str(user.id))
        raise ForbiddenError("Inactive user account", user_id=str(user.id))

    set_user_id(str(user.id))
    logger.debug("User authenticated", user_id=str(user.id), role=user.role.value)
    return user


def require_role(role: UserRole) -> Callable:
    """
    Dependency factory for role gates.

    Example:
        @router.get("/stats", dependencies=[Depends(require_role(UserRole.OWNER))])
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        ensure_authorized(current_user, role)
        return current_user

    return role_checker


require_owner = require_role(UserRole.OWNER)


async def get_order_service(
    backend: Annotated[Backend, Depends(get_backend)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OrderService:
    return OrderService(db, backend.object_store)


async def get_company_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CompanyService:
    return CompanyService(CompanyRepository(db))


async def get_finance_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> FinanceService:
    return FinanceService(db)


CurrentUser = Annotated[User, Depends(get_current_user)]
OwnerUser = Annotated[User, Depends(require_owner)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
CompanyServiceDep = Annotated[CompanyService, Depends(get_company_service)]
FinanceServiceDep = Annotated[FinanceService, Depends(get_finance_service)]
