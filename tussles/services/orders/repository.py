"""
Order data access repository.

Async SQLAlchemy queries for orders: lookups with company and creator
loaded, filtered listings, the conditional approval update and the per-status
revenue rollup read from the ``revenue_summary`` view.
"""

import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import column, select, table, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tussles.core.errors import UpstreamError
from tussles.core.logging import get_logger
from tussles.database.models.order import Order
from tussles.schemas.orders import RevenueSummaryRow
from tussles.services.orders.enums import OrderStatus
from tussles.services.orders.state_machine import ApprovalUpdate
from tussles.services.orders.validation import OrderDraft

logger = get_logger(__name__)

revenue_summary_view = table(
    "revenue_summary",
    column("status"),
    column("order_count"),
    column("total_revenue"),
)


class OrderRepository:
    """
    Repository for order data access operations.

    Every store failure is logged with its detail and re-raised as
    UpstreamError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _failure(self, operation: str, error: SQLAlchemyError, **context) -> UpstreamError:
        logger.error(
            "Order store operation failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        return UpstreamError(f"Order store operation failed: {operation}", **context)

    async def commit(self) -> None:
        """Commit the pending writes of this session."""
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            raise self._failure("commit", e) from e

    async def get(self, order_id: uuid.UUID) -> Optional[Order]:
        """
        Fetch one order with its company and creator.

        Returns:
            The order, or None if the id does not resolve
        """
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._failure("get", e, order_id=str(order_id)) from e
        return result.unique().scalar_one_or_none()

    async def list(self, status: Optional[OrderStatus] = None) -> Sequence[Order]:
        """List orders newest first, optionally with one status."""
        stmt = select(Order).order_by(Order.created_at.desc())
        if status is not None:
            stmt = stmt.where(Order.status == status)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._failure("list", e, status=status.value if status else None) from e
        return result.unique().scalars().all()

    async def list_completed(self, limit: int) -> Sequence[Order]:
        """List completed orders, most recently approved first."""
        stmt = (
            select(Order)
            .where(Order.status == OrderStatus.COMPLETED)
            .order_by(Order.approved_at.desc().nulls_last())
            .limit(limit)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._failure("list_completed", e) from e
        return result.unique().scalars().all()

    async def list_completed_between(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[Order]:
        """Completed orders with a completion time inside ``[start, end]``, newest first."""
        stmt = (
            select(Order)
            .where(Order.status == OrderStatus.COMPLETED)
            .where(Order.completed_at.is_not(None))
            .order_by(Order.completed_at.desc())
        )
        if start is not None:
            stmt = stmt.where(Order.completed_at >= start)
        if end is not None:
            stmt = stmt.where(Order.completed_at <= end)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._failure("list_completed_between", e) from e
        return result.unique().scalars().all()

    async def create(
        self,
        draft: OrderDraft,
        created_by: uuid.UUID,
        image_url: Optional[str] = None,
    ) -> Order:
        """
        Insert a new order awaiting approval.

        ``sell_price`` starts equal to ``total_amount``.

        Returns:
            The stored order with company and creator loaded
        """
        order = Order(
            company_id=draft.company_id,
            quantity=draft.quantity,
            price_per_unit=draft.price_per_unit,
            total_amount=draft.total_amount,
            sell_price=draft.total_amount,
            due_date=draft.due_date,
            notes=draft.notes,
            image_url=image_url,
            status=OrderStatus.AWAITING_APPROVAL,
            created_by=created_by,
        )
        try:
            self.session.add(order)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise self._failure("create", e, company_id=str(draft.company_id)) from e

        logger.info(
            "Order created",
            order_id=str(order.id),
            company_id=str(draft.company_id),
            total_amount=str(draft.total_amount),
        )
        return await self.get(order.id)

    async def apply_approval(
        self,
        order_id: uuid.UUID,
        approval: ApprovalUpdate,
    ) -> Optional[Order]:
        """
        Persist an approval only if the order is still awaiting approval.

        Returns:
            The updated order, or None when no row matched the condition
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .where(Order.status == OrderStatus.AWAITING_APPROVAL)
            .values(**approval.as_values())
            .returning(Order.id)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            updated_id = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._failure("apply_approval", e, order_id=str(order_id)) from e

        if updated_id is None:
            return None
        return await self.get(order_id)

    async def revenue_summary(self) -> List[RevenueSummaryRow]:
        """Read the per-status rollup view."""
        stmt = select(
            revenue_summary_view.c.status,
            revenue_summary_view.c.order_count,
            revenue_summary_view.c.total_revenue,
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._failure("revenue_summary", e) from e
        return [
            RevenueSummaryRow(
                status=row["status"],
                order_count=row["order_count"] or 0,
                total_revenue=row["total_revenue"] or 0,
            )
            for row in result.mappings().all()
        ]
