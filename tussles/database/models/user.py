"""
User profile model with role management.

Authentication itself belongs to the identity provider; this table holds the
profile it is linked to by id: display name, role, salary and active flag.
"""

import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Enum as SQLEnum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from tussles.database.base import BaseModel


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""

    OWNER = "owner"
    EMPLOYEE = "employee"


class User(BaseModel):
    """
    User profile linked to an identity-provider account.

    Attributes:
        id: Identity-provider user id (UUID)
        full_name: Display name
        email: Contact email
        role: Owner or employee, assigned at signup and read thereafter
        salary: Monthly salary used as operating expense
        is_active: Whether the user counts as active staff
    """

    __tablename__ = "users"

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="User display name",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="User email address",
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="user_role",
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=UserRole.EMPLOYEE,
        index=True,
        comment="User role for access control",
    )

    salary: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        comment="Monthly salary",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Active staff flag",
    )
