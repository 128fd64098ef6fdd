"""
Tests for repository error mapping with a mocked async session.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from tussles.core.errors import UpstreamError
from tussles.services.companies.repository import CompanyRepository, DuplicateCompanyError
from tussles.services.orders.repository import OrderRepository
from tussles.services.users.repository import UserRepository


def failing_session() -> AsyncMock:
    session = AsyncMock()
    error = OperationalError("SELECT 1", {}, Exception("connection refused"))
    session.execute.side_effect = error
    session.get.side_effect = error
    return session


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_order_lookup_failure(self):
        with pytest.raises(UpstreamError, match="Order store operation failed: get"):
            await OrderRepository(failing_session()).get(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_revenue_summary_failure(self):
        with pytest.raises(UpstreamError):
            await OrderRepository(failing_session()).revenue_summary()

    @pytest.mark.asyncio
    async def test_user_lookup_failure(self):
        with pytest.raises(UpstreamError, match="User lookup failed"):
            await UserRepository(failing_session()).get(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_company_listing_failure(self):
        with pytest.raises(UpstreamError):
            await CompanyRepository(failing_session()).list_alphabetical()


class TestOrderRepository:
    @pytest.mark.asyncio
    async def test_commit_failure_maps_to_upstream(self):
        session = AsyncMock()
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("connection reset"))

        with pytest.raises(UpstreamError, match="Order store operation failed: commit"):
            await OrderRepository(session).commit()

    @pytest.mark.asyncio
    async def test_apply_approval_no_match_returns_none(self):
        session = AsyncMock()
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        session.execute.return_value = result

        updated = await OrderRepository(session).apply_approval(uuid.uuid4(), MagicMock())

        assert updated is None
        assert session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_revenue_summary_rows(self):
        session = AsyncMock()
        result = MagicMock()
        result.mappings.return_value.all.return_value = [
            {"status": "awaiting_approval", "order_count": 2, "total_revenue": None},
        ]
        session.execute.return_value = result

        rows = await OrderRepository(session).revenue_summary()

        assert rows[0].status == "awaiting_approval"
        assert rows[0].order_count == 2
        assert rows[0].total_revenue == 0


class TestCompanyRepository:
    @pytest.mark.asyncio
    async def test_name_lookup_folds_case_in_the_store(self):
        session = AsyncMock()
        result = MagicMock()
        result.scalars.return_value.first.return_value = None
        session.execute.return_value = result

        await CompanyRepository(session).find_by_name("Straße GmbH")

        stmt = session.execute.call_args.args[0]
        compiled = str(stmt.compile(dialect=postgresql.dialect()))
        assert compiled.count("lower(") == 2

    @pytest.mark.asyncio
    async def test_duplicate_name(self):
        session = MagicMock()
        nested = MagicMock()
        nested.__aenter__ = AsyncMock(return_value=None)
        nested.__aexit__ = AsyncMock(return_value=False)
        session.begin_nested.return_value = nested
        session.flush = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("duplicate key"))
        )

        with pytest.raises(DuplicateCompanyError):
            await CompanyRepository(session).create(None, name="Acme")
