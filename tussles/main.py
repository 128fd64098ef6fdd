"""
FastAPI application entry point.

Builds the application with CORS, rate limiting, request logging, the
response-envelope exception handlers and the API routers. The backend
handle is created in the lifespan; missing configuration leaves it
degraded instead of stopping the process.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from tussles.api.v1 import companies_router, finance_router, orders_router
from tussles.core.config import Settings, get_settings
from tussles.core.errors import TusslesError, UpstreamError, ValidationError
from tussles.core.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    log_performance,
    set_request_id,
)
from tussles.core.rate_limit import limiter
from tussles.schemas.common import ErrorResponse
from tussles.services.backend import build_backend

# Configure logging before application initialization
configure_logging()
logger = get_logger(__name__)


def error_response(
    status_code: int,
    message: str,
    errors: Optional[dict[str, str]] = None,
    detail: Optional[str] = None,
) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        errors=errors or None,
        detail=detail,
        request_id=get_request_id() or None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Build the backend handle on startup and release it on shutdown.

    A backend already placed on ``app.state`` is kept as is.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        version=settings.app_version,
    )

    owns_backend = getattr(app.state, "backend", None) is None
    if owns_backend:
        with log_performance(logger, "application_startup"):
            app.state.backend = build_backend(settings)

    logger.info(
        "Backend ready",
        configured=app.state.backend.configured,
        storage_configured=app.state.backend.object_store.configured,
    )

    yield

    logger.info("Application shutting down")
    if owns_backend:
        await app.state.backend.close()
        app.state.backend = None


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Map every failure onto the ``{success: false, message}`` envelope."""

    @app.exception_handler(TusslesError)
    async def tussles_error_handler(request: Request, exc: TusslesError) -> JSONResponse:
        if isinstance(exc, UpstreamError):
            logger.error(
                "Upstream failure",
                method=request.method,
                path=request.url.path,
                error=exc.message,
                **exc.context,
            )
            return error_response(
                exc.status_code,
                exc.public_message,
                detail=exc.message if settings.debug else None,
            )

        logger.warning(
            "Request rejected",
            method=request.method,
            path=request.url.path,
            error_type=type(exc).__name__,
            error=exc.message,
        )
        errors = exc.fields if isinstance(exc, ValidationError) else None
        return error_response(exc.status_code, exc.message, errors=errors)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields: dict[str, str] = {}
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
            name = ".".join(loc) or "request"
            fields.setdefault(name, str(error.get("msg", "Invalid value")).removeprefix("Value error, "))

        logger.warning(
            "Request validation failed",
            method=request.method,
            path=request.url.path,
            fields=sorted(fields),
        )
        first_field, first_message = next(iter(fields.items()), ("request", "Invalid request"))
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid {first_field}: {first_message}",
            errors=fields,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            message = "Endpoint not found"
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning(
            "Rate limit exceeded",
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )
        return error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Too many requests, please try again later",
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            detail=str(exc) if settings.debug else None,
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use, defaults to the cached environment settings
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Manufacturing order tracking backend API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.backend = None

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Set the correlation id, log the request and echo X-Request-ID."""
        request_id = set_request_id(request.headers.get("X-Request-ID"))

        logger.info(
            "Request received",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            with log_performance(
                logger,
                "request_processing",
                method=request.method,
                path=request.url.path,
            ):
                response = await call_next(request)

            response.headers["X-Request-ID"] = request_id
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            return response
        finally:
            clear_context()

    register_exception_handlers(app, settings)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health check endpoint",
    )
    async def health_check() -> dict[str, str]:
        """Liveness probe; answers even when the backend is degraded."""
        return {"status": "ok", "message": f"{settings.app_name} is running"}

    app.include_router(orders_router, prefix=settings.api_prefix)
    app.include_router(companies_router, prefix=settings.api_prefix)
    app.include_router(finance_router, prefix=settings.api_prefix)

    return app


app = create_app()
