"""Order state machine with transition validation.

The machine works on fetched copies of orders: it validates a transition,
computes the fields that change, and leaves persistence to the caller. It
never touches the store itself.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from tussles.core.errors import InvalidStateError, NotFoundError
from tussles.core.logging import get_logger
from tussles.core.permissions import ensure_authorized
from tussles.database.models.user import UserRole
from tussles.services.orders.enums import (
    OrderStatus,
    get_allowed_order_transitions,
    validate_order_status_transition,
)

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ApprovalUpdate:
    """Field values written by an approval."""

    status: OrderStatus
    approved_by: UUID
    approved_at: datetime
    completed_at: datetime

    def as_values(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at,
            "completed_at": self.completed_at,
        }


class OrderStateMachine:
    """State machine for the order lifecycle.

    Attributes:
        clock: Callable returning the current aware datetime
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or utc_now

    def validate_transition(self, order: Any, target_status: OrderStatus) -> bool:
        """Validate that ``order`` may move to ``target_status``.

        Args:
            order: Order to validate
            target_status: Desired target status

        Returns:
            True if transition is valid

        Raises:
            InvalidStateError: If the transition is not allowed; the message
                names the current status
        """
        current_status = OrderStatus(order.status)

        if not validate_order_status_transition(current_status, target_status):
            allowed = get_allowed_order_transitions(current_status)
            logger.info(
                "Order transition rejected",
                order_id=str(order.id),
                current_status=current_status.value,
                target_status=target_status.value,
                allowed_transitions=[s.value for s in allowed],
            )
            raise InvalidStateError(
                f"Order cannot be moved to {target_status.value}: "
                f"current status is {current_status.value}",
                current_status=current_status.value,
                order_id=str(order.id),
            )

        return True

    def approve(self, order: Optional[Any], acting_user: Any) -> ApprovalUpdate:
        """Compute the approval of an order by an owner.

        Checks run in order: the order must exist, the actor must be an
        owner, and the order must be awaiting approval. The order passed
        in is not modified.

        Args:
            order: Fetched order, or None if the id did not resolve
            acting_user: User performing the approval

        Returns:
            ApprovalUpdate with the fields to persist

        Raises:
            NotFoundError: If ``order`` is None
            ForbiddenError: If the actor is not an owner
            InvalidStateError: If the order is not awaiting approval
        """
        if order is None:
            raise NotFoundError("Order not found")

        ensure_authorized(acting_user, UserRole.OWNER)
        self.validate_transition(order, OrderStatus.COMPLETED)

        now = self.clock()
        update = ApprovalUpdate(
            status=OrderStatus.COMPLETED,
            approved_by=acting_user.id,
            approved_at=now,
            completed_at=now,
        )

        logger.info(
            "Order approval validated",
            order_id=str(order.id),
            approved_by=str(acting_user.id),
        )
        return update
