"""
Financial report endpoints, owner only.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from tussles.api.deps import FinanceServiceDep, OwnerUser
from tussles.schemas.common import ApiResponse
from tussles.schemas.finance import (
    BreakevenReport,
    CompanyProfit,
    NetProfitReport,
    TrendBucket,
)

router = APIRouter(prefix="/finance", tags=["finance"])


@router.get("/net-profit", response_model=ApiResponse[NetProfitReport])
async def get_net_profit(
    current_user: OwnerUser,
    service: FinanceServiceDep,
    period: str = Query("monthly", description="weekly, monthly or yearly"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
) -> ApiResponse[NetProfitReport]:
    report = await service.net_profit(current_user, period=period, start=start, end=end)
    return ApiResponse(data=report)


@router.get("/trends", response_model=ApiResponse[list[TrendBucket]])
async def get_profit_trends(
    current_user: OwnerUser,
    service: FinanceServiceDep,
    period: str = Query("monthly", description="daily, weekly or monthly"),
    count: int = Query(12, ge=1, le=366),
) -> ApiResponse[list[TrendBucket]]:
    trends = await service.profit_trends(current_user, period=period, count=count)
    return ApiResponse(data=trends)


@router.get("/breakeven", response_model=ApiResponse[BreakevenReport])
async def get_breakeven(
    current_user: OwnerUser,
    service: FinanceServiceDep,
) -> ApiResponse[BreakevenReport]:
    return ApiResponse(data=await service.breakeven(current_user))


@router.get("/companies", response_model=ApiResponse[list[CompanyProfit]])
async def get_company_profits(
    current_user: OwnerUser,
    service: FinanceServiceDep,
) -> ApiResponse[list[CompanyProfit]]:
    return ApiResponse(data=await service.company_profits(current_user))
