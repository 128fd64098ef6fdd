"""
Finance service: loads a snapshot of orders, users and companies and hands
it to the aggregator. Every report is owner-only.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tussles.core.errors import ValidationError
from tussles.core.logging import get_logger
from tussles.core.permissions import ensure_authorized
from tussles.database.models.user import UserRole
from tussles.schemas.finance import (
    BreakevenReport,
    CompanyProfit,
    NetProfitReport,
    TrendBucket,
)
from tussles.services.companies.repository import CompanyRepository
from tussles.services.finance import aggregator
from tussles.services.orders.repository import OrderRepository
from tussles.services.orders.state_machine import utc_now
from tussles.services.users.repository import UserRepository

logger = get_logger(__name__)


class FinanceService:
    """Owner-only financial reports."""

    def __init__(
        self,
        session: Optional[AsyncSession],
        clock: Optional[Callable[[], datetime]] = None,
        orders: Optional[OrderRepository] = None,
        users: Optional[UserRepository] = None,
        companies: Optional[CompanyRepository] = None,
    ):
        self.clock = clock or utc_now
        self.orders = orders or OrderRepository(session)
        self.users = users or UserRepository(session)
        self.companies = companies or CompanyRepository(session)

    async def net_profit(
        self,
        acting_user: Any,
        period: str = "monthly",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> NetProfitReport:
        ensure_authorized(acting_user, UserRole.OWNER)
        start = aggregator.as_aware(start)
        end = aggregator.as_aware(end)
        if start is not None and end is not None and start > end:
            raise ValidationError(
                "Invalid start: must not be after end",
                fields={"start": "Must not be after end"},
            )

        orders = await self.orders.list_completed_between(start, end)
        users = await self.users.list_active()
        report = aggregator.net_profit(
            orders, users, period=period, start=start, end=end, now=self.clock()
        )
        logger.info(
            "Net profit calculated",
            period=report.period.value,
            total_orders=report.total_orders,
        )
        return report

    async def profit_trends(
        self,
        acting_user: Any,
        period: str = "monthly",
        count: int = 12,
    ) -> list[TrendBucket]:
        ensure_authorized(acting_user, UserRole.OWNER)
        orders = await self.orders.list_completed_between()
        users = await self.users.list_active()
        return aggregator.profit_trends(orders, users, period=period, count=count)

    async def breakeven(self, acting_user: Any) -> BreakevenReport:
        ensure_authorized(acting_user, UserRole.OWNER)
        orders = await self.orders.list_completed_between()
        users = await self.users.list_active()
        return aggregator.breakeven(orders, users, now=self.clock())

    async def company_profits(self, acting_user: Any) -> list[CompanyProfit]:
        ensure_authorized(acting_user, UserRole.OWNER)
        companies = await self.companies.list_alphabetical()
        orders = await self.orders.list_completed_between()
        return aggregator.company_profit_analysis(companies, orders)
