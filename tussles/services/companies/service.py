"""
Company service.

Registers companies without duplicates: a name that matches an existing
company ignoring case returns that company instead of creating a new one.
"""

from typing import Any, Sequence

from tussles.core.logging import get_logger
from tussles.database.models.company import Company
from tussles.schemas.companies import CompanyCreateRequest
from tussles.services.companies.repository import (
    CompanyRepository,
    DuplicateCompanyError,
)

logger = get_logger(__name__)


class CompanyService:
    """Company listing and get-or-create."""

    def __init__(self, repository: CompanyRepository):
        self.repository = repository

    async def list_companies(self) -> Sequence[Company]:
        return await self.repository.list_alphabetical()

    async def get_or_create(
        self,
        request: CompanyCreateRequest,
        acting_user: Any,
    ) -> tuple[Company, bool]:
        """
        Return the company with ``request.name``, creating it if needed.

        Args:
            request: Validated company fields
            acting_user: User registering the company

        Returns:
            (company, created) where created is False for an existing match
        """
        existing = await self.repository.find_by_name(request.name)
        if existing is not None:
            logger.info(
                "Company already exists",
                company_id=str(existing.id),
                requested_name=request.name,
            )
            return existing, False

        try:
            company = await self.repository.create(
                created_by=acting_user.id,
                **request.model_dump(),
            )
            await self.repository.commit()
        except DuplicateCompanyError:
            # Lost a race with a concurrent insert of the same name.
            existing = await self.repository.find_by_name(request.name)
            if existing is None:
                raise
            return existing, False

        return company, True
