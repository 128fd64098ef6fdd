"""
Tests for OrderService with mocked repositories and object store.
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.factories import FIXED_NOW, PNG_BYTES, apply_update, make_order
from tussles.core.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from tussles.schemas.orders import RevenueSummaryRow
from tussles.services.orders.enums import OrderStatus
from tussles.services.orders.service import OrderService
from tussles.services.orders.state_machine import OrderStateMachine
from tussles.services.orders.validation import ImageUpload
from tussles.services.storage.object_store import ObjectStore


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def repository() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def companies(company) -> AsyncMock:
    repo = AsyncMock()
    repo.get.return_value = company
    return repo


@pytest.fixture
def store() -> MagicMock:
    store = MagicMock(spec=ObjectStore)
    store.upload.return_value = "https://files.example.com/public/test-bucket/tussles/a.png"
    store.delete.return_value = True
    return store


@pytest.fixture
def service(repository, companies, store, clock) -> OrderService:
    return OrderService(
        None,
        store,
        clock=clock,
        repository=repository,
        companies=companies,
    )


def form(company, **overrides):
    raw = {
        "company_id": str(company.id),
        "quantity": "100",
        "price_per_unit": "50.00",
        "due_date": "",
        "notes": None,
    }
    raw.update(overrides)
    return raw


# ============================================================================
# Creation
# ============================================================================


class TestCreateOrder:
    """Order creation flow."""

    @pytest.mark.asyncio
    async def test_create_without_image(self, service, repository, store, company, employee_user):
        created = make_order(company=company, creator=employee_user)
        repository.create.return_value = created

        result = await service.create_order(form(company), None, employee_user)

        assert result is created
        draft = repository.create.call_args.args[0]
        assert draft.total_amount == Decimal("5000.00")
        assert draft.due_date == FIXED_NOW.date()
        assert repository.create.call_args.kwargs == {
            "created_by": employee_user.id,
            "image_url": None,
        }
        store.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_with_image_uploads_first(self, service, repository, store, company, employee_user):
        repository.create.return_value = make_order(company=company)
        image = ImageUpload("part.png", "image/png", PNG_BYTES)

        await service.create_order(form(company), image, employee_user)

        key, data, content_type = store.upload.call_args.args
        assert key.startswith("tussles/") and key.endswith(".png")
        assert data == PNG_BYTES
        assert content_type == "image/png"
        assert repository.create.call_args.kwargs["image_url"] == store.upload.return_value

    @pytest.mark.asyncio
    async def test_invalid_input_has_no_side_effects(self, service, repository, companies, store, company, employee_user):
        image = ImageUpload("tool.png", "image/png", b"MZ\x90\x00")

        with pytest.raises(ValidationError):
            await service.create_order(form(company), image, employee_user)

        store.upload.assert_not_called()
        companies.get.assert_not_called()
        repository.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_company(self, service, companies, store, company, employee_user):
        companies.get.return_value = None
        image = ImageUpload("part.png", "image/png", PNG_BYTES)

        with pytest.raises(NotFoundError, match="Company not found"):
            await service.create_order(form(company), image, employee_user)

        store.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_failure_skips_insert(self, service, repository, store, company, employee_user):
        store.upload.side_effect = UpstreamError("Failed to upload image")
        image = ImageUpload("part.png", "image/png", PNG_BYTES)

        with pytest.raises(UpstreamError):
            await service.create_order(form(company), image, employee_user)

        repository.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_failure_removes_uploaded_image(self, service, repository, store, company, employee_user):
        repository.create.side_effect = UpstreamError("Order store operation failed: create")
        image = ImageUpload("part.png", "image/png", PNG_BYTES)

        with pytest.raises(UpstreamError):
            await service.create_order(form(company), image, employee_user)

        uploaded_key = store.upload.call_args.args[0]
        store.delete.assert_called_once_with(uploaded_key)

    @pytest.mark.asyncio
    async def test_commit_failure_removes_uploaded_image(self, service, repository, store, company, employee_user):
        repository.create.return_value = make_order(company=company)
        repository.commit.side_effect = UpstreamError("Order store operation failed: commit")
        image = ImageUpload("part.png", "image/png", PNG_BYTES)

        with pytest.raises(UpstreamError, match="commit"):
            await service.create_order(form(company), image, employee_user)

        store.delete.assert_called_once_with(store.upload.call_args.args[0])

    @pytest.mark.asyncio
    async def test_create_commits_before_returning(self, service, repository, company, employee_user):
        repository.create.return_value = make_order(company=company)

        await service.create_order(form(company), None, employee_user)

        repository.commit.assert_awaited_once()


# ============================================================================
# Approval
# ============================================================================


class TestApproveOrder:
    """Approval flow including the concurrent-approval path."""

    @pytest.mark.asyncio
    async def test_owner_approves(self, service, repository, owner_user):
        order = make_order()
        approved = make_order(status=OrderStatus.COMPLETED, completed_at=FIXED_NOW)
        repository.get.return_value = order
        repository.apply_approval.return_value = approved

        result = await service.approve_order(order.id, owner_user)

        assert result is approved
        order_id, update = repository.apply_approval.call_args.args
        assert order_id == order.id
        assert update.status == OrderStatus.COMPLETED
        assert update.approved_by == owner_user.id
        assert update.approved_at == FIXED_NOW
        assert update.completed_at == FIXED_NOW
        repository.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_failure_surfaces(self, service, repository, owner_user):
        order = make_order()
        repository.get.return_value = order
        repository.apply_approval.return_value = make_order(status=OrderStatus.COMPLETED)
        repository.commit.side_effect = UpstreamError("Order store operation failed: commit")

        with pytest.raises(UpstreamError):
            await service.approve_order(order.id, owner_user)

    @pytest.mark.asyncio
    async def test_missing_order(self, service, repository, owner_user):
        repository.get.return_value = None

        with pytest.raises(NotFoundError):
            await service.approve_order(uuid.uuid4(), owner_user)

        repository.apply_approval.assert_not_called()

    @pytest.mark.asyncio
    async def test_employee_forbidden(self, service, repository, employee_user):
        repository.get.return_value = make_order()

        with pytest.raises(ForbiddenError):
            await service.approve_order(uuid.uuid4(), employee_user)

        repository.apply_approval.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_completed(self, service, repository, owner_user):
        repository.get.return_value = make_order(
            status=OrderStatus.COMPLETED, completed_at=FIXED_NOW - timedelta(hours=1)
        )

        with pytest.raises(InvalidStateError):
            await service.approve_order(uuid.uuid4(), owner_user)

        repository.apply_approval.assert_not_called()

    @pytest.mark.asyncio
    async def test_lost_race_reports_invalid_state(self, service, repository, owner_user):
        pending = make_order()
        winner = make_order(status=OrderStatus.COMPLETED, completed_at=FIXED_NOW)
        repository.get.side_effect = [pending, winner]
        repository.apply_approval.return_value = None

        with pytest.raises(InvalidStateError) as exc_info:
            await service.approve_order(pending.id, owner_user)

        assert exc_info.value.current_status == "completed"

    @pytest.mark.asyncio
    async def test_second_approval_fails_without_changes(self, repository, companies, store, owner_user):
        order = make_order()
        machine = OrderStateMachine(clock=lambda: FIXED_NOW)
        service = OrderService(None, store, state_machine=machine, repository=repository, companies=companies)

        async def apply(order_id, update):
            return apply_update(order, update)

        repository.get.return_value = order
        repository.apply_approval.side_effect = apply

        first = await service.approve_order(order.id, owner_user)
        assert first.status == OrderStatus.COMPLETED

        with pytest.raises(InvalidStateError):
            await service.approve_order(order.id, owner_user)

        assert repository.apply_approval.await_count == 1
        assert order.approved_by == owner_user.id


# ============================================================================
# Listing and statistics
# ============================================================================


class TestListingAndStats:
    @pytest.mark.asyncio
    async def test_employee_listing_hides_old_completed(self, service, repository, employee_user):
        pending = make_order()
        old = make_order(status=OrderStatus.COMPLETED, completed_at=FIXED_NOW - timedelta(days=2))
        repository.list.return_value = [pending, old]

        result = await service.list_orders(employee_user)

        assert result == [pending]
        repository.list.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_owner_listing_with_status(self, service, repository, owner_user):
        old = make_order(status=OrderStatus.COMPLETED, completed_at=FIXED_NOW - timedelta(days=2))
        repository.list.return_value = [old]

        result = await service.list_orders(owner_user, OrderStatus.COMPLETED)

        assert result == [old]
        repository.list.assert_awaited_once_with(OrderStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_completed_history_owner_only(self, service, repository, employee_user, owner_user):
        with pytest.raises(ForbiddenError):
            await service.list_completed(employee_user)

        repository.list_completed.return_value = []
        assert await service.list_completed(owner_user) == []
        repository.list_completed.assert_awaited_once_with(50)

    @pytest.mark.asyncio
    async def test_dashboard_stats(self, service, repository, owner_user):
        repository.revenue_summary.return_value = [
            RevenueSummaryRow(status="awaiting_approval", order_count=3, total_revenue=Decimal("1500")),
            RevenueSummaryRow(status="completed", order_count=2, total_revenue=Decimal("2500.50")),
        ]

        stats = await service.dashboard_stats(owner_user)

        assert stats.total_expected_revenue == Decimal("4000.50")
        assert stats.pending_approvals == 3
        assert len(stats.revenue_summary) == 2

    @pytest.mark.asyncio
    async def test_dashboard_stats_forbidden_for_employee(self, service, employee_user):
        with pytest.raises(ForbiddenError):
            await service.dashboard_stats(employee_user)
