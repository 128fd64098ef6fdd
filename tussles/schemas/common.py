"""
Shared response envelope and field types.

Every endpoint answers with ``{success, message?, data?}``; money values are
kept as Decimal in Python and rendered as exact decimal strings.
"""

from decimal import Decimal
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer

T = TypeVar("T")

Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""

    model_config = ConfigDict(from_attributes=True)

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Envelope returned for failed requests."""

    success: bool = False
    message: str
    errors: Optional[dict[str, str]] = None
    detail: Optional[str] = None
    request_id: Optional[str] = None
