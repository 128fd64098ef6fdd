"""
Order API endpoints.

Order creation takes a multipart form so that an image can ride along with
the fields. Listing is filtered by the caller's role; approval, completed
history and dashboard statistics are owner-only.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, Request, UploadFile, status

from tussles.api.deps import CurrentUser, OrderServiceDep, OwnerUser
from tussles.core.errors import ValidationError
from tussles.core.logging import get_logger
from tussles.core.rate_limit import ORDER_CREATE_LIMIT, limiter
from tussles.schemas.common import ApiResponse
from tussles.schemas.orders import DashboardStats, OrderResponse
from tussles.services.orders.enums import OrderStatus
from tussles.services.orders.validation import MAX_IMAGE_SIZE_BYTES, ImageUpload

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def _parse_status(value: Optional[str]) -> Optional[OrderStatus]:
    if value is None or not value.strip():
        return None
    try:
        return OrderStatus.from_string(value.strip())
    except ValueError as e:
        raise ValidationError(str(e), fields={"status": str(e)}) from e


@router.get(
    "",
    response_model=ApiResponse[list[OrderResponse]],
    summary="List orders visible to the caller",
)
async def list_orders(
    current_user: CurrentUser,
    service: OrderServiceDep,
    status_filter: Optional[str] = Query(None, alias="status"),
) -> ApiResponse[list[OrderResponse]]:
    orders = await service.list_orders(current_user, _parse_status(status_filter))
    return ApiResponse(data=[OrderResponse.model_validate(o) for o in orders])


@router.post(
    "",
    response_model=ApiResponse[OrderResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
)
@limiter.limit(ORDER_CREATE_LIMIT)
async def create_order(
    request: Request,
    current_user: CurrentUser,
    service: OrderServiceDep,
    company_id: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price_per_unit: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
) -> ApiResponse[OrderResponse]:
    """
    Create an order awaiting approval.

    Every field is validated before the image is uploaded; a failed
    validation reports all offending fields at once. At most one byte past
    the image size limit is read from the upload.
    """
    upload = None
    if image is not None and image.filename:
        upload = ImageUpload(
            filename=image.filename,
            content_type=image.content_type or "",
            data=await image.read(MAX_IMAGE_SIZE_BYTES + 1),
        )

    raw = {
        "company_id": company_id,
        "quantity": quantity,
        "price_per_unit": price_per_unit,
        "due_date": due_date,
        "notes": notes,
    }
    order = await service.create_order(raw, upload, current_user)
    return ApiResponse(
        message="Order created successfully",
        data=OrderResponse.model_validate(order),
    )


@router.get(
    "/completed",
    response_model=ApiResponse[list[OrderResponse]],
    summary="Completed order history",
)
async def list_completed_orders(
    current_user: OwnerUser,
    service: OrderServiceDep,
) -> ApiResponse[list[OrderResponse]]:
    orders = await service.list_completed(current_user)
    return ApiResponse(data=[OrderResponse.model_validate(o) for o in orders])


@router.get(
    "/dashboard/stats",
    response_model=ApiResponse[DashboardStats],
    summary="Revenue dashboard statistics",
)
async def get_dashboard_stats(
    current_user: OwnerUser,
    service: OrderServiceDep,
) -> ApiResponse[DashboardStats]:
    stats = await service.dashboard_stats(current_user)
    return ApiResponse(data=stats)


@router.post(
    "/{order_id}/approve",
    response_model=ApiResponse[OrderResponse],
    summary="Approve order",
)
async def approve_order(
    order_id: UUID,
    current_user: CurrentUser,
    service: OrderServiceDep,
) -> ApiResponse[OrderResponse]:
    """Mark an order awaiting approval as completed."""
    order = await service.approve_order(order_id, current_user)
    return ApiResponse(
        message="Order approved successfully",
        data=OrderResponse.model_validate(order),
    )
