"""
Financial aggregation over already-fetched rows.

Pure functions: callers pass orders, users and companies loaded from the
store and get report models back. Every function is total over empty input.
Missing cost fields count as zero and every division by a possibly-zero
amount is guarded.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional, Union

from tussles.core.errors import ValidationError
from tussles.schemas.finance import (
    BreakevenReport,
    CompanyProfit,
    NetProfitReport,
    OrderProfit,
    ProfitPeriod,
    TrendBucket,
    TrendPeriod,
)
from tussles.schemas.orders import DashboardStats, RevenueSummaryRow
from tussles.services.orders.enums import OrderStatus

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

TOP_ORDERS_LIMIT = 5
BREAKEVEN_SAMPLE_SIZE = 100

# Monthly salaries are scaled to the reporting period.
PERIOD_OPEX_FACTORS = {
    ProfitPeriod.WEEKLY: Decimal("1") / Decimal("4"),
    ProfitPeriod.MONTHLY: Decimal("1"),
    ProfitPeriod.YEARLY: Decimal("12"),
}

TREND_OPEX_FACTORS = {
    TrendPeriod.DAILY: Decimal("1") / Decimal("30"),
    TrendPeriod.WEEKLY: Decimal("1") / Decimal("4"),
    TrendPeriod.MONTHLY: Decimal("1"),
}


def _money(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _margin(profit: Decimal, revenue: Decimal) -> Decimal:
    if revenue == ZERO:
        return ZERO
    return _round(profit / revenue * HUNDRED)


def as_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _is_completed(order: Any) -> bool:
    status = order.status
    value = status.value if isinstance(status, OrderStatus) else str(status)
    return value == OrderStatus.COMPLETED.value


def _order_cost(order: Any) -> Decimal:
    return _money(order.material_cost) + _money(order.labor_cost)


def _completed(orders: Iterable[Any]) -> list[Any]:
    return [order for order in orders if _is_completed(order)]


def _parse_period(value: Union[str, Any], enum_cls):
    try:
        return enum_cls(value.value if isinstance(value, enum_cls) else value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Invalid period: {value}",
            fields={"period": f"Must be one of: {allowed}"},
        ) from None


def monthly_salaries(users: Iterable[Any]) -> Decimal:
    """Sum of monthly salaries of active users."""
    return sum(
        (_money(user.salary) for user in users if getattr(user, "is_active", True)),
        ZERO,
    )


def dashboard_stats(rows: Iterable[RevenueSummaryRow]) -> DashboardStats:
    """Roll the per-status revenue view up into dashboard totals."""
    rows = list(rows)
    total = sum((_money(row.total_revenue) for row in rows), ZERO)
    pending = next(
        (
            row.order_count
            for row in rows
            if str(row.status) == OrderStatus.AWAITING_APPROVAL.value
        ),
        0,
    )
    return DashboardStats(
        total_expected_revenue=total,
        pending_approvals=pending,
        revenue_summary=rows,
    )


def net_profit(
    orders: Iterable[Any],
    users: Iterable[Any],
    period: Union[ProfitPeriod, str] = ProfitPeriod.MONTHLY,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> NetProfitReport:
    """
    Net profit of completed orders within ``[start, end]``.

    Revenue is the sum of sell prices, cost of goods is material plus labor,
    and operating expenses are active salaries scaled to ``period``.

    Raises:
        ValidationError: If ``period`` is not weekly, monthly or yearly
    """
    period = _parse_period(period, ProfitPeriod)
    start, end = as_aware(start), as_aware(end)

    in_range = []
    for order in _completed(orders):
        completed_at = as_aware(order.completed_at)
        if start is not None and (completed_at is None or completed_at < start):
            continue
        if end is not None and (completed_at is None or completed_at > end):
            continue
        in_range.append(order)

    revenue = sum((_money(o.sell_price) for o in in_range), ZERO)
    material = sum((_money(o.material_cost) for o in in_range), ZERO)
    labor = sum((_money(o.labor_cost) for o in in_range), ZERO)
    cogs = material + labor
    gross = revenue - cogs
    opex = _round(monthly_salaries(users) * PERIOD_OPEX_FACTORS[period])
    net = gross - opex
    count = len(in_range)

    contributions = [order_profit(order) for order in in_range]
    contributions.sort(key=lambda item: item.gross_profit, reverse=True)

    return NetProfitReport(
        period=period,
        start=start,
        end=end,
        revenue=revenue,
        material_cost=material,
        labor_cost=labor,
        cogs=cogs,
        gross_profit=gross,
        operating_expenses=opex,
        total_costs=cogs + opex,
        net_profit=net,
        profit_margin=_margin(net, revenue),
        total_orders=count,
        average_order_value=_round(revenue / count) if count else ZERO,
        top_orders=contributions[:TOP_ORDERS_LIMIT],
        calculated_at=as_aware(now) or datetime.now(timezone.utc),
    )


def order_profit(order: Any) -> OrderProfit:
    revenue = _money(order.sell_price)
    cost = _order_cost(order)
    company = getattr(order, "company", None)
    return OrderProfit(
        order_id=order.id,
        company_id=getattr(order, "company_id", None),
        company_name=getattr(company, "name", None),
        revenue=revenue,
        cost=cost,
        gross_profit=revenue - cost,
        profit_margin=_margin(revenue - cost, revenue),
    )


def period_key(moment: datetime, period: TrendPeriod) -> str:
    """Bucket key: the day, the Monday starting the ISO week, or year-month."""
    day: date = moment.date()
    if period is TrendPeriod.DAILY:
        return day.isoformat()
    if period is TrendPeriod.WEEKLY:
        return (day - timedelta(days=day.weekday())).isoformat()
    return f"{day.year:04d}-{day.month:02d}"


def profit_trends(
    orders: Iterable[Any],
    users: Iterable[Any],
    period: Union[TrendPeriod, str] = TrendPeriod.MONTHLY,
    count: int = 12,
) -> list[TrendBucket]:
    """
    Per-bucket profit for the most recent ``count`` buckets, oldest first.

    Orders without a completion time are skipped.

    Raises:
        ValidationError: If ``period`` is unknown or ``count`` is below 1
    """
    period = _parse_period(period, TrendPeriod)
    if count < 1:
        raise ValidationError(
            "Invalid count: must be at least 1",
            fields={"count": "Must be at least 1"},
        )

    opex = _round(monthly_salaries(users) * TREND_OPEX_FACTORS[period])
    buckets: dict[str, dict[str, Any]] = defaultdict(
        lambda: {"revenue": ZERO, "cogs": ZERO, "orders": 0}
    )
    for order in _completed(orders):
        completed_at = as_aware(order.completed_at)
        if completed_at is None:
            continue
        bucket = buckets[period_key(completed_at, period)]
        bucket["revenue"] += _money(order.sell_price)
        bucket["cogs"] += _order_cost(order)
        bucket["orders"] += 1

    keys = sorted(buckets)[-count:]
    trends = []
    for key in keys:
        totals = buckets[key]
        gross = totals["revenue"] - totals["cogs"]
        net = gross - opex
        trends.append(
            TrendBucket(
                period=key,
                revenue=totals["revenue"],
                cogs=totals["cogs"],
                gross_profit=gross,
                orders=totals["orders"],
                opex=opex,
                net_profit=net,
                profit_margin=_margin(net, totals["revenue"]),
            )
        )
    return trends


def breakeven(
    orders: Iterable[Any],
    users: Iterable[Any],
    now: Optional[datetime] = None,
) -> BreakevenReport:
    """
    Break-even revenue and order count for the current salary load.

    The sample is the most recently completed orders, up to
    ``BREAKEVEN_SAMPLE_SIZE``.
    """
    now = as_aware(now) or datetime.now(timezone.utc)
    fixed_costs = monthly_salaries(users)

    sample = sorted(
        _completed(orders),
        key=lambda o: as_aware(o.completed_at) or datetime.min.replace(tzinfo=timezone.utc),
        reverse=True,
    )[:BREAKEVEN_SAMPLE_SIZE]

    if not sample:
        return BreakevenReport(
            insufficient_data=True,
            fixed_costs=fixed_costs,
            break_even_revenue=fixed_costs,
        )

    size = Decimal(len(sample))
    avg_revenue = sum((_money(o.sell_price) for o in sample), ZERO) / size
    avg_cogs = sum((_order_cost(o) for o in sample), ZERO) / size
    contribution = avg_revenue - avg_cogs
    ratio = contribution / avg_revenue if avg_revenue != ZERO else ZERO
    break_even = fixed_costs / ratio if ratio > ZERO else ZERO
    if avg_revenue != ZERO:
        orders_needed = int((break_even / avg_revenue).to_integral_value(rounding=ROUND_CEILING))
    else:
        orders_needed = 0

    current_month = sum(
        1
        for o in sample
        if o.completed_at is not None
        and (as_aware(o.completed_at).year, as_aware(o.completed_at).month)
        == (now.year, now.month)
    )

    return BreakevenReport(
        fixed_costs=fixed_costs,
        break_even_revenue=_round(break_even),
        sample_size=len(sample),
        average_revenue=_round(avg_revenue),
        average_cogs=_round(avg_cogs),
        contribution_margin=_round(contribution),
        contribution_margin_ratio=ratio.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP),
        orders_needed=orders_needed,
        current_month_orders=current_month,
    )


def company_profit_analysis(
    companies: Iterable[Any],
    orders: Iterable[Any],
) -> list[CompanyProfit]:
    """Profit per company with at least one completed order, best first."""
    by_company: dict[Any, list[Any]] = defaultdict(list)
    for order in _completed(orders):
        by_company[order.company_id].append(order)

    results = []
    for company in companies:
        company_orders = by_company.get(company.id)
        if not company_orders:
            continue
        revenue = sum((_money(o.sell_price) for o in company_orders), ZERO)
        cost = sum((_order_cost(o) for o in company_orders), ZERO)
        gross = revenue - cost
        results.append(
            CompanyProfit(
                company_id=company.id,
                company_name=company.name,
                total_orders=len(company_orders),
                revenue=revenue,
                total_cost=cost,
                gross_profit=gross,
                profit_margin=_margin(gross, revenue),
            )
        )

    results.sort(key=lambda item: item.gross_profit, reverse=True)
    return results
