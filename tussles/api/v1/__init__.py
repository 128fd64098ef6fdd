"""
API v1 routers.
"""

from tussles.api.v1.companies import router as companies_router
from tussles.api.v1.finance import router as finance_router
from tussles.api.v1.orders import router as orders_router

__all__ = ["companies_router", "finance_router", "orders_router"]
