"""
Bearer token utilities.

Tokens are issued by the identity provider and signed (HS256 by default)
with the backend service credential. This module decodes and validates
them, and can mint equivalent tokens for local development and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from tussles.core.config import Settings, get_settings
from tussles.core.errors import AuthError, UpstreamError
from tussles.core.logging import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60


def _require_secret(settings: Settings) -> str:
    if settings.service_key is None:
        logger.error("Token verification unavailable: service key is not configured")
        raise UpstreamError(
            "Authentication backend is not configured",
            missing="APP_SERVICE_KEY",
        )
    return settings.service_key


def create_access_token(
    user_id: UUID,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: Subject of the token
        role: Optional role claim, informational only
        expires_delta: Optional custom lifetime
        settings: Settings override, defaults to the cached settings

    Returns:
        Encoded token string
    """
    settings = settings or get_settings()
    secret = _require_secret(settings)

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    claims: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
    }
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    if role:
        claims["role"] = role

    return jwt.encode(claims, secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> UUID:
    """
    Decode a bearer token and return the user id it was issued for.

    Args:
        token: Raw bearer token
        settings: Settings override, defaults to the cached settings

    Returns:
        User id from the ``sub`` claim

    Raises:
        AuthError: If the token is empty, expired, malformed or has no valid subject
        UpstreamError: If no service key is configured
    """
    if not token:
        raise AuthError("No authorization token provided")

    settings = settings or get_settings()
    secret = _require_secret(settings)

    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options=options,
        )
    except ExpiredSignatureError as e:
        logger.info("Bearer token expired")
        raise AuthError("Invalid or expired token", reason="expired") from e
    except JWTError as e:
        logger.warning(
            "Bearer token rejected",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise AuthError("Invalid or expired token", reason="invalid") from e

    subject = payload.get("sub")
    try:
        return UUID(str(subject))
    except ValueError as e:
        logger.warning("Bearer token subject is not a user id", subject=subject)
        raise AuthError("Invalid or expired token", reason="bad_subject") from e
