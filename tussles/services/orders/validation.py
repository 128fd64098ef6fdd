"""
Order creation input validation.

Pure functions that turn raw form values and an optional uploaded file into
a typed draft, or raise a single ValidationError naming every offending
field. Nothing here performs I/O, so a request that fails validation never
reaches the store or the object store.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from tussles.core.errors import ValidationError
from tussles.core.logging import get_logger
from tussles.schemas.orders import OrderCreateInput

logger = get_logger(__name__)

MAX_IMAGE_SIZE_BYTES = 5 * 1024 * 1024

# MIME type -> image format
ALLOWED_IMAGE_MIME_TYPES: dict[str, str] = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

# File extension -> image format
ALLOWED_IMAGE_EXTENSIONS: dict[str, str] = {
    "jpeg": "jpeg",
    "jpg": "jpeg",
    "png": "png",
    "gif": "gif",
    "webp": "webp",
}

CANONICAL_CONTENT_TYPES: dict[str, str] = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

IMAGE_KEY_PREFIX = "tussles"


@dataclass(frozen=True)
class OrderDraft:
    """Validated order fields ready to persist."""

    company_id: uuid.UUID
    quantity: int
    price_per_unit: Decimal
    total_amount: Decimal
    due_date: date
    notes: Optional[str]


@dataclass(frozen=True)
class ImageUpload:
    """Uploaded file as received from the transport."""

    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class ValidatedImage:
    """Image that passed type, size and signature checks."""

    extension: str
    content_type: str
    data: bytes

    def object_key(self) -> str:
        """Fresh random object key for this image."""
        return f"{IMAGE_KEY_PREFIX}/{uuid.uuid4().hex}.{self.extension}"


def sniff_image_format(data: bytes) -> Optional[str]:
    """
    Identify an image format from its leading bytes.

    Returns:
        "png", "jpeg", "gif" or "webp", or None if unrecognised
    """
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


def _image_errors(upload: ImageUpload) -> tuple[Optional[str], Optional[ValidatedImage]]:
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    mime_format = ALLOWED_IMAGE_MIME_TYPES.get(content_type)
    if mime_format is None:
        return "Only JPEG, PNG, GIF and WEBP images are allowed", None

    extension = PurePosixPath(upload.filename or "").suffix.lower().lstrip(".")
    extension_format = ALLOWED_IMAGE_EXTENSIONS.get(extension)
    if extension_format is None:
        return "Image file extension must be one of jpeg, jpg, png, gif, webp", None

    if extension_format != mime_format:
        return "Image file extension does not match its content type", None

    size = len(upload.data)
    if size == 0:
        return "Image file is empty", None
    if size > MAX_IMAGE_SIZE_BYTES:
        return "File size too large. Maximum 5MB allowed.", None

    if sniff_image_format(upload.data) != mime_format:
        return "Image content does not match its declared type", None

    return None, ValidatedImage(
        extension=extension,
        content_type=CANONICAL_CONTENT_TYPES[mime_format],
        data=upload.data,
    )


def validate_image(upload: ImageUpload) -> ValidatedImage:
    """
    Validate an uploaded order image.

    Both the MIME type and the file extension must name an allowed format,
    the same one, and the file's leading bytes must match it.

    Raises:
        ValidationError: With field ``image`` on any mismatch
    """
    error, image = _image_errors(upload)
    if error is not None:
        raise ValidationError(error, fields={"image": error}, filename=upload.filename)
    return image


def _field_errors(exc: PydanticValidationError) -> dict[str, str]:
    fields: dict[str, str] = {}
    for error in exc.errors():
        name = str(error["loc"][0]) if error.get("loc") else "__root__"
        message = error.get("msg", "Invalid value")
        if error.get("type") == "missing":
            message = "Field is required"
        fields.setdefault(name, message.removeprefix("Value error, "))
    return fields


def validate_order_input(
    raw: Mapping[str, Any],
    image: Optional[ImageUpload] = None,
    today: Optional[date] = None,
) -> tuple[OrderDraft, Optional[ValidatedImage]]:
    """
    Validate a create-order request in full.

    Args:
        raw: Form values keyed by field name
        image: Optional uploaded image
        today: Date used when no due date is given

    Returns:
        The order draft and the validated image (or None)

    Raises:
        ValidationError: Listing every offending field
    """
    fields: dict[str, str] = {}
    parsed: Optional[OrderCreateInput] = None

    try:
        parsed = OrderCreateInput.model_validate(dict(raw))
    except PydanticValidationError as e:
        fields.update(_field_errors(e))

    validated_image = None
    if image is not None:
        try:
            validated_image = validate_image(image)
        except ValidationError as e:
            fields.update(e.fields)

    if fields:
        logger.info("Order input rejected", fields=sorted(fields))
        first = next(iter(fields.items()))
        raise ValidationError(f"Invalid {first[0]}: {first[1]}", fields=fields)

    due_date = parsed.due_date or today or datetime.now().date()
    draft = OrderDraft(
        company_id=parsed.company_id,
        quantity=parsed.quantity,
        price_per_unit=parsed.price_per_unit,
        total_amount=parsed.price_per_unit * parsed.quantity,
        due_date=due_date,
        notes=parsed.notes,
    )
    return draft, validated_image
