"""
User profile repository.

Profiles are read-only from this service: the identity provider creates
them at signup.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tussles.core.errors import UpstreamError
from tussles.core.logging import get_logger
from tussles.database.models.user import User

logger = get_logger(__name__)


class UserRepository:
    """Read access to user profiles."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        """Fetch a profile by identity-provider user id."""
        try:
            return await self.session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error(
                "Database error during user retrieval",
                user_id=str(user_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamError("User lookup failed", user_id=str(user_id)) from e

    async def list_active(self) -> Sequence[User]:
        """Active users, whose salaries make up operating expense."""
        stmt = select(User).where(User.is_active.is_(True))
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Database error listing active users",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamError("User listing failed") from e
        return result.scalars().all()
