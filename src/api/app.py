"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.api.dependencies import cleanup_dependencies, init_dependencies
from src.api.middleware.timeout import TimeoutMiddleware
from src.api.routes import feeds, health, mixins, posts, tags
from src.config.settings import get_settings
from src.errors import (
    FeedFetchError,
    InvalidConcatTypeError,
    MediaResolutionError,
    NotFoundError,
    UnsupportedMediaTypeError,
    UploadFailedError,
)
from src.observability.logging import bind_context, clear_context

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Content engine API starting up")
    await init_dependencies()

    yield

    logger.info("Content engine API shutting down")
    await cleanup_dependencies()


def _error(status_code: int, detail: str, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "error_type": error_type},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(404, str(exc), "not_found")

    @app.exception_handler(InvalidConcatTypeError)
    async def concat_type_handler(request: Request, exc: InvalidConcatTypeError):
        return _error(400, str(exc), "invalid_concat_type")

    @app.exception_handler(MediaResolutionError)
    async def media_resolution_handler(request: Request, exc: MediaResolutionError):
        return _error(400, str(exc), "media_resolution")

    @app.exception_handler(UnsupportedMediaTypeError)
    async def media_type_handler(request: Request, exc: UnsupportedMediaTypeError):
        return _error(415, str(exc), "unsupported_media_type")

    @app.exception_handler(UploadFailedError)
    async def upload_failed_handler(request: Request, exc: UploadFailedError):
        logger.error("Upload failed", path=request.url.path, error=str(exc))
        return _error(502, str(exc), "upload_failed")

    @app.exception_handler(FeedFetchError)
    async def feed_fetch_handler(request: Request, exc: FeedFetchError):
        return _error(502, str(exc), "feed_fetch")

    # JSON payload parts of multipart requests are validated in the route
    @app.exception_handler(ValidationError)
    async def payload_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.errors(include_url=False, include_context=False, include_input=False),
                "error_type": "validation",
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _error(400, str(exc), "bad_request")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return _error(500, "Internal server error", "internal")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "posts", "description": "Posts and block reconciliation"},
        {"name": "mixins", "description": "Mixins and per-context mixin settings"},
        {"name": "feeds", "description": "RSS/Atom feed sources and polling"},
        {"name": "tags", "description": "Tag vocabulary shared by posts"},
    ]

    app = FastAPI(
        title="Content Engine API",
        description="""
Content management engine: block-structured posts, media lifecycle,
mixin weaving for listings, and scheduled RSS ingestion.

## Multipart writes

Post and mixin writes take a JSON `payload` form field plus `files`.
Each file is addressed by the matching entry of `refs`, or by its
position (`"0"`, `"1"`, ...) when no ref is given.

## Authentication

Requires `X-API-KEY` header for all requests except `/health`.
Writes that create content also require `X-USER-ID`.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    # Add CORS middleware (origins from CORS_ORIGINS env var, comma-separated)
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Added before the logging middleware so the timeout wraps the whole request
    if settings.request_timeout_seconds > 0:
        app.add_middleware(
            TimeoutMiddleware,
            timeout_seconds=settings.request_timeout_seconds,
        )

    # Request logging and correlation ID middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)
        user_id = request.headers.get("X-USER-ID")
        if user_id:
            bind_context(user_id=user_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            clear_context()

    _register_exception_handlers(app)

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(posts.router, tags=["posts"])
    app.include_router(mixins.router, tags=["mixins"])
    app.include_router(feeds.router, tags=["feeds"])
    app.include_router(tags.router, tags=["tags"])

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Content Engine API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app
