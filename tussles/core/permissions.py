"""
Role-based authorization.

A single decision function answers whether an acting user may perform an
action that requires a role. Route dependencies and services both go
through it, so the rule lives in one place.
"""

from dataclasses import dataclass
from typing import Any, Optional

from tussles.core.errors import ForbiddenError
from tussles.core.logging import get_logger
from tussles.database.models.user import UserRole

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


def authorize(user: Any, required_role: UserRole) -> AuthorizationDecision:
    """
    Decide whether ``user`` holds ``required_role``.

    Roles are flat: an owner is not implicitly an employee and vice versa.

    Args:
        user: Acting user (anything with ``role`` and ``is_active``)
        required_role: Role the action requires

    Returns:
        AuthorizationDecision with a reason on deny
    """
    if user is None:
        return AuthorizationDecision(False, "No acting user")

    if not getattr(user, "is_active", True):
        return AuthorizationDecision(False, "Inactive user account")

    role = getattr(user, "role", None)
    if role != required_role:
        return AuthorizationDecision(
            False,
            f"Access denied. {required_role.value.capitalize()} role required.",
        )

    return AuthorizationDecision(True)


def ensure_authorized(user: Any, required_role: UserRole) -> None:
    """
    Raise ForbiddenError unless ``user`` holds ``required_role``.

    Raises:
        ForbiddenError: On a deny decision
    """
    decision = authorize(user, required_role)
    if not decision.allowed:
        role = getattr(user, "role", None)
        logger.warning(
            "Access denied: insufficient permissions",
            user_id=str(getattr(user, "id", None)),
            user_role=getattr(role, "value", role),
            required_role=required_role.value,
        )
        raise ForbiddenError(decision.reason or "Access denied")
