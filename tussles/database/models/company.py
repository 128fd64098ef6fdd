"""
Company model for the customers orders are produced for.

Company names are unique ignoring case; a functional unique index on
``lower(name)`` enforces it in the store.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from tussles.database.base import BaseModel


class Company(BaseModel):
    """
    Customer company referenced by orders.

    Attributes:
        name: Company name, unique case-insensitively
        contact_person: Primary contact
        phone: Contact phone
        email: Contact email
        address: Postal address
        created_by: User who registered the company
    """

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Company name (unique, case-insensitive)",
    )

    contact_person: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    address: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who created the company",
    )


Index("ux_companies_name_lower", func.lower(Company.name), unique=True)
