"""
Company data access repository.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tussles.core.errors import UpstreamError
from tussles.core.logging import get_logger
from tussles.database.models.company import Company

logger = get_logger(__name__)


class DuplicateCompanyError(Exception):
    """Raised when an insert hits the case-insensitive name index."""


class CompanyRepository:
    """Repository for company lookups and inserts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _failure(self, operation: str, error: SQLAlchemyError, **context) -> UpstreamError:
        logger.error(
            "Company store operation failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        return UpstreamError(f"Company store operation failed: {operation}", **context)

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            raise self._failure("commit", e) from e

    async def get(self, company_id: uuid.UUID) -> Optional[Company]:
        try:
            return await self.session.get(Company, company_id)
        except SQLAlchemyError as e:
            raise self._failure("get", e, company_id=str(company_id)) from e

    async def list_alphabetical(self) -> Sequence[Company]:
        """All companies sorted by name, ignoring case."""
        stmt = select(Company).order_by(func.lower(Company.name), Company.name)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._failure("list", e) from e
        return result.scalars().all()

    async def find_by_name(self, name: str) -> Optional[Company]:
        """Case-insensitive exact name lookup."""
        stmt = select(Company).where(func.lower(Company.name) == func.lower(name))
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._failure("find_by_name", e, name=name) from e
        return result.scalars().first()

    async def create(self, created_by: Optional[uuid.UUID], **fields) -> Company:
        """
        Insert a company inside a savepoint.

        Raises:
            DuplicateCompanyError: If another company already has the name
        """
        company = Company(created_by=created_by, **fields)
        try:
            async with self.session.begin_nested():
                self.session.add(company)
                await self.session.flush()
        except IntegrityError as e:
            logger.info("Company name already taken", name=fields.get("name"))
            raise DuplicateCompanyError(fields.get("name")) from e
        except SQLAlchemyError as e:
            raise self._failure("create", e, name=fields.get("name")) from e

        await self.session.refresh(company)
        logger.info("Company created", company_id=str(company.id), name=company.name)
        return company
