"""
Financial report schemas.

All money amounts are Decimal internally and serialize as JSON numbers.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tussles.schemas.common import Money


class ProfitPeriod(str, Enum):
    """Reporting period for net profit."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class TrendPeriod(str, Enum):
    """Bucket width for profit trends."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class OrderProfit(BaseModel):
    """Profit contribution of one completed order."""

    order_id: UUID
    company_id: Optional[UUID] = None
    company_name: Optional[str] = None
    revenue: Money
    cost: Money
    gross_profit: Money
    profit_margin: Money


class NetProfitReport(BaseModel):
    period: ProfitPeriod
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    revenue: Money = Decimal("0")
    material_cost: Money = Decimal("0")
    labor_cost: Money = Decimal("0")
    cogs: Money = Decimal("0")
    gross_profit: Money = Decimal("0")
    operating_expenses: Money = Decimal("0")
    total_costs: Money = Decimal("0")
    net_profit: Money = Decimal("0")
    profit_margin: Money = Decimal("0")
    total_orders: int = 0
    average_order_value: Money = Decimal("0")
    top_orders: list[OrderProfit] = Field(default_factory=list)
    calculated_at: datetime


class TrendBucket(BaseModel):
    """Totals for one period bucket, keyed by its start."""

    period: str
    revenue: Money = Decimal("0")
    cogs: Money = Decimal("0")
    gross_profit: Money = Decimal("0")
    orders: int = 0
    opex: Money = Decimal("0")
    net_profit: Money = Decimal("0")
    profit_margin: Money = Decimal("0")


class BreakevenReport(BaseModel):
    """
    Break-even analysis.

    When there is no completed order to sample, ``insufficient_data`` is set,
    ``break_even_revenue`` equals the fixed costs and the per-order metrics
    are left empty.
    """

    insufficient_data: bool = False
    fixed_costs: Money = Decimal("0")
    break_even_revenue: Money = Decimal("0")
    sample_size: int = 0
    average_revenue: Optional[Money] = None
    average_cogs: Optional[Money] = None
    contribution_margin: Optional[Money] = None
    contribution_margin_ratio: Optional[Money] = None
    orders_needed: Optional[int] = None
    current_month_orders: Optional[int] = None


class CompanyProfit(BaseModel):
    company_id: UUID
    company_name: str
    total_orders: int
    revenue: Money
    total_cost: Money
    gross_profit: Money
    profit_margin: Money
