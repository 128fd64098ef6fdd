"""
Order model for production work items.

An order is produced for a company, created by an employee or owner and
approved by an owner. ``total_amount`` is fixed at creation and is what the
revenue summary trusts; it is never re-derived from quantity and price.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tussles.database.base import BaseModel
from tussles.database.models.company import Company
from tussles.database.models.user import User
from tussles.services.orders.enums import OrderStatus

NOTES_MAX_LENGTH = 1000


class Order(BaseModel):
    """
    Manufacturing order.

    Attributes:
        company_id: Company the order is produced for
        quantity: Units ordered
        price_per_unit: Agreed unit price
        total_amount: quantity * price_per_unit, fixed at creation
        due_date: Requested completion date
        notes: Free text, capped at NOTES_MAX_LENGTH characters
        image_url: Public URL of the reference image
        status: Lifecycle status
        created_by: User who created the order
        approved_by: Owner who approved the order
        approved_at: Approval timestamp
        completed_at: Completion timestamp
        sell_price: Recognised sale price used for profit reporting
        material_cost: Material cost used for profit reporting
        labor_cost: Labor cost used for profit reporting
    """

    __tablename__ = "orders"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    price_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2),
        nullable=False,
        comment="quantity * price_per_unit at creation",
    )

    due_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    image_url: Mapped[Optional[str]] = mapped_column(
        String(1024),
        nullable=True,
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=OrderStatus.AWAITING_APPROVAL,
        index=True,
    )

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    sell_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=18, scale=2),
        nullable=True,
    )

    material_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=18, scale=2),
        nullable=True,
    )

    labor_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=18, scale=2),
        nullable=True,
    )

    company: Mapped[Company] = relationship(
        Company,
        lazy="joined",
        foreign_keys=[company_id],
    )

    creator: Mapped[User] = relationship(
        User,
        lazy="joined",
        foreign_keys=[created_by],
    )

    __table_args__ = (
        Index("ix_orders_status_created", "status", "created_at"),
        Index("ix_orders_status_approved", "status", "approved_at"),
        CheckConstraint("quantity >= 1 AND quantity <= 100000000", name="ck_orders_quantity_range"),
        CheckConstraint(
            "price_per_unit > 0 AND price_per_unit <= 10000000",
            name="ck_orders_price_per_unit_range",
        ),
        CheckConstraint("total_amount >= 0", name="ck_orders_total_amount_non_negative"),
        CheckConstraint(
            "status = 'completed' OR (approved_by IS NULL AND approved_at IS NULL AND completed_at IS NULL)",
            name="ck_orders_unapproved_fields_unset",
        ),
    )
