"""
Order visibility rules for listings.

Owners see every order. Employees see all unfinished work plus orders
completed within a rolling window, so old completed work drops out of their
listing while owners keep the full history.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Union

from tussles.database.models.user import UserRole
from tussles.services.orders.enums import OrderStatus

EMPLOYEE_COMPLETED_WINDOW = timedelta(hours=24)
COMPLETED_HISTORY_LIMIT = 50

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _status_value(status: Union[OrderStatus, str, None]) -> Optional[str]:
    if status is None:
        return None
    return status.value if isinstance(status, OrderStatus) else str(status)


def completed_recently(order: Any, now: datetime) -> bool:
    """
    Whether a completed order falls inside the employee window.

    The completion time falls back to ``updated_at``; the window includes
    its boundary (exactly 24 hours ago is still visible).
    """
    finished_at = _as_aware(order.completed_at or getattr(order, "updated_at", None))
    if finished_at is None:
        return False
    return now - finished_at <= EMPLOYEE_COMPLETED_WINDOW


def is_visible_to(order: Any, viewer: Any, now: datetime) -> bool:
    """Apply the role rule to a single order."""
    if viewer.role == UserRole.OWNER:
        return True
    if _status_value(order.status) != OrderStatus.COMPLETED.value:
        return True
    return completed_recently(order, now)


def sort_orders(orders: Iterable[Any]) -> list[Any]:
    """Sort newest created first; rows without a creation time go last."""
    return sorted(
        orders,
        key=lambda order: _as_aware(getattr(order, "created_at", None)) or _EPOCH,
        reverse=True,
    )


def list_visible_orders(
    orders: Iterable[Any],
    viewer: Any,
    status_filter: Union[OrderStatus, str, None] = None,
    now: Optional[datetime] = None,
) -> list[Any]:
    """
    Narrow a fetched set of orders to what ``viewer`` may see.

    Args:
        orders: Orders fetched from the store
        viewer: Acting user
        status_filter: Optional exact status to keep
        now: Current time, defaults to the UTC clock

    Returns:
        Visible orders in display order
    """
    now = _as_aware(now) or datetime.now(timezone.utc)
    wanted = _status_value(status_filter)

    visible = [
        order
        for order in orders
        if (wanted is None or _status_value(order.status) == wanted)
        and is_visible_to(order, viewer, now)
    ]
    return sort_orders(visible)
