"""
Database models package initialization.

Models are imported here so they are registered with the Base metadata for
Alembic and relationship resolution.
"""

from tussles.database.base import Base, BaseModel, TimestampMixin, UUIDMixin
from tussles.database.models.company import Company
from tussles.database.models.order import Order
from tussles.database.models.user import User, UserRole

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    "Company",
    "Order",
    "User",
    "UserRole",
]
