"""
Order service orchestrating validation, storage and the approval lifecycle.

Creating an order validates every field before any side effect, uploads the
optional image, then inserts the row; if the insert fails the uploaded image
is removed again. Approval goes through the state machine and is persisted
with a conditional update so that two concurrent approvals cannot both win.
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from tussles.core.errors import InvalidStateError, NotFoundError, TusslesError
from tussles.core.logging import get_logger
from tussles.core.permissions import ensure_authorized
from tussles.database.models.order import Order
from tussles.database.models.user import UserRole
from tussles.schemas.orders import DashboardStats
from tussles.services.companies.repository import CompanyRepository
from tussles.services.finance.aggregator import dashboard_stats
from tussles.services.orders.enums import OrderStatus
from tussles.services.orders.repository import OrderRepository
from tussles.services.orders.state_machine import OrderStateMachine, utc_now
from tussles.services.orders.validation import ImageUpload, validate_order_input
from tussles.services.orders.visibility import (
    COMPLETED_HISTORY_LIMIT,
    list_visible_orders,
)
from tussles.services.storage.object_store import ObjectStore

logger = get_logger(__name__)


class OrderService:
    """
    Order operations for the API layer.

    Attributes:
        repository: Order data access
        companies: Company lookups used to check order references
        object_store: Image storage
        state_machine: Approval rules
    """

    def __init__(
        self,
        session: Optional[AsyncSession],
        object_store: ObjectStore,
        state_machine: Optional[OrderStateMachine] = None,
        clock: Optional[Callable[[], datetime]] = None,
        repository: Optional[OrderRepository] = None,
        companies: Optional[CompanyRepository] = None,
    ):
        self.clock = clock or utc_now
        self.repository = repository or OrderRepository(session)
        self.companies = companies or CompanyRepository(session)
        self.object_store = object_store
        self.state_machine = state_machine or OrderStateMachine(clock=self.clock)

    async def create_order(
        self,
        raw: Mapping[str, Any],
        image: Optional[ImageUpload],
        acting_user: Any,
    ) -> Order:
        """
        Validate and store a new order awaiting approval.

        Args:
            raw: Form fields of the request
            image: Optional uploaded image
            acting_user: Creating user, recorded as ``created_by``

        Returns:
            The stored order

        Raises:
            ValidationError: If any field or the image is invalid
            NotFoundError: If the company does not exist
            UpstreamError: If the image upload or the insert fails
        """
        draft, validated_image = validate_order_input(
            raw, image, today=self.clock().date()
        )

        company = await self.companies.get(draft.company_id)
        if company is None:
            raise NotFoundError("Company not found", company_id=str(draft.company_id))

        image_key = None
        image_url = None
        if validated_image is not None:
            image_key = validated_image.object_key()
            image_url = await run_in_threadpool(
                self.object_store.upload,
                image_key,
                validated_image.data,
                validated_image.content_type,
            )

        try:
            order = await self.repository.create(
                draft,
                created_by=acting_user.id,
                image_url=image_url,
            )
            await self.repository.commit()
        except TusslesError:
            if image_key is not None:
                logger.warning(
                    "Removing image of failed order insert",
                    key=image_key,
                )
                await run_in_threadpool(self.object_store.delete, image_key)
            raise

        logger.info(
            "Order submitted",
            order_id=str(order.id),
            created_by=str(acting_user.id),
            has_image=image_url is not None,
        )
        return order

    async def approve_order(self, order_id: uuid.UUID, acting_user: Any) -> Order:
        """
        Approve an order awaiting approval.

        Raises:
            NotFoundError: If the order does not exist
            ForbiddenError: If the actor is not an owner
            InvalidStateError: If the order is not awaiting approval
        """
        order = await self.repository.get(order_id)
        approval = self.state_machine.approve(order, acting_user)

        updated = await self.repository.apply_approval(order_id, approval)
        if updated is None:
            # Another approval committed between the read and the update.
            current = await self.repository.get(order_id)
            if current is None:
                raise NotFoundError("Order not found", order_id=str(order_id))
            status = OrderStatus(current.status).value
            raise InvalidStateError(
                f"Order cannot be moved to completed: current status is {status}",
                current_status=status,
                order_id=str(order_id),
            )

        await self.repository.commit()

        logger.info(
            "Order approved",
            order_id=str(order_id),
            approved_by=str(acting_user.id),
        )
        return updated

    async def list_orders(
        self,
        acting_user: Any,
        status: Optional[OrderStatus] = None,
    ) -> list[Order]:
        """Orders visible to ``acting_user``, newest first."""
        orders = await self.repository.list(status)
        return list_visible_orders(
            orders,
            acting_user,
            status_filter=status,
            now=self.clock(),
        )

    async def list_completed(self, acting_user: Any) -> Sequence[Order]:
        """Completed history for owners, most recently approved first."""
        ensure_authorized(acting_user, UserRole.OWNER)
        return await self.repository.list_completed(COMPLETED_HISTORY_LIMIT)

    async def dashboard_stats(self, acting_user: Any) -> DashboardStats:
        ensure_authorized(acting_user, UserRole.OWNER)
        rows = await self.repository.revenue_summary()
        return dashboard_stats(rows)
