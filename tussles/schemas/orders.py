"""
Order Pydantic schemas for request validation and responses.

``OrderCreateInput`` is the typed shape of a create request after the
multipart form has been read; responses embed short company and creator
summaries the way the dashboard lists them.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tussles.database.models.order import NOTES_MAX_LENGTH
from tussles.schemas.common import Money
from tussles.services.orders.enums import OrderStatus

MAX_QUANTITY = 100_000_000
MAX_PRICE_PER_UNIT = Decimal("10000000")
CENT = Decimal("0.01")


class OrderCreateInput(BaseModel):
    """Fields of an order creation request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    company_id: UUID = Field(
        ...,
        description="Company the order is produced for",
    )
    quantity: int = Field(
        ...,
        ge=1,
        le=MAX_QUANTITY,
        description="Units ordered",
    )
    price_per_unit: Decimal = Field(
        ...,
        gt=0,
        le=MAX_PRICE_PER_UNIT,
        description="Unit price, rounded half-up to cents",
    )
    due_date: Optional[date] = Field(
        None,
        description="Requested completion date, defaults to today",
    )
    notes: Optional[str] = Field(
        None,
        description=f"Free text, truncated to {NOTES_MAX_LENGTH} characters",
    )

    @field_validator("company_id", "quantity", "price_per_unit", mode="before")
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        """Reject blank form values as missing."""
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("Field is required")
        return v

    @field_validator("price_per_unit")
    @classmethod
    def round_price(cls, v: Decimal) -> Decimal:
        """Round to the stored scale; a price that rounds to zero is rejected."""
        v = v.quantize(CENT, rounding=ROUND_HALF_UP)
        if v <= 0:
            raise ValueError("Price per unit must be at least 0.01")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        """Accept a plain date or a full ISO timestamp."""
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            if "T" in v:
                try:
                    return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
                except ValueError:
                    raise ValueError("Due date must be a valid date")
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def truncate_notes(cls, v: Any) -> Any:
        if v is None:
            return None
        v = str(v).strip()
        if not v:
            return None
        return v[:NOTES_MAX_LENGTH]


class CompanySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    contact_person: Optional[str] = None


class CreatorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str


class OrderResponse(BaseModel):
    """Order as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    quantity: int
    price_per_unit: Money
    total_amount: Money
    due_date: date
    notes: Optional[str] = None
    image_url: Optional[str] = None
    status: OrderStatus
    created_by: UUID
    approved_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    company: Optional[CompanySummary] = None
    creator: Optional[CreatorSummary] = None


class RevenueSummaryRow(BaseModel):
    """Per-status rollup of order counts and total value."""

    model_config = ConfigDict(from_attributes=True)

    status: str
    order_count: int = 0
    total_revenue: Money = Decimal("0")


class DashboardStats(BaseModel):
    total_expected_revenue: Money
    pending_approvals: int
    revenue_summary: list[RevenueSummaryRow]
