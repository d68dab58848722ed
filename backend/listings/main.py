"""
Main application module for the property listings backend.

This module configures and starts the FastAPI application, including middleware,
exception handlers, shared service construction and route registration.
"""
import logging
from typing import Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .api.models import ErrorResponse
from .api.routes.cache_routes import router as cache_router
from .api.routes.health import router as health_router
from .api.routes.property_routes import router as property_router
from .core.config import settings
from .core.errors import DatastoreError, PropertyNotFoundError, PropertyValidationError
from .core.rate_limit import limiter
from .services.cache_invalidation import CacheInvalidator
from .services.cache_policy import CachePolicy
from .services.cache_store import build_cache_store
from .services.filter_compiler import InvalidPaginationError
from .services.property_admin import PropertyAdminService
from .services.property_service import PropertyService
from .services.property_store import SupabasePropertyStore

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.value,
    format=settings.LOG_FORMAT,
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Search, detail and cache management API for property listings",
    version=settings.VERSION,
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    debug=False
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, error: str, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=None if details is None else str(details)).model_dump(),
    )


@app.exception_handler(InvalidPaginationError)
async def pagination_exception_handler(request: Request, exc: InvalidPaginationError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid pagination", exc)


@app.exception_handler(PropertyValidationError)
async def validation_exception_handler(request: Request, exc: PropertyValidationError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid request", exc)


@app.exception_handler(PropertyNotFoundError)
async def not_found_exception_handler(request: Request, exc: PropertyNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "Property not found", exc.property_id)


@app.exception_handler(DatastoreError)
async def datastore_exception_handler(request: Request, exc: DatastoreError) -> JSONResponse:
    """
    Handler for datastore failures that reach the API surface.

    Args:
        request: The request that caused the exception
        exc: The datastore error

    Returns:
        JSONResponse: 500 with a generic message and the diagnostic detail
    """
    logger.error(f"Datastore error on {request.method} {request.url.path}: {exc.message}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Datastore request failed", exc.message)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for all unhandled exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception that was raised

    Returns:
        JSONResponse: A JSON response with error details
    """
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        str(exc) if settings.DEBUG else None,
    )


@app.get("/", include_in_schema=False)
async def root() -> Dict[str, Any]:
    """
    Root endpoint that provides basic API information.

    Returns:
        Dict[str, Any]: API information
    """
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "docs_url": f"{settings.API_PREFIX}/docs",
        "health_check": f"{settings.API_PREFIX}/health"
    }


# Register routes
app.include_router(property_router)
app.include_router(cache_router)
app.include_router(health_router)


@app.on_event("startup")
async def startup_event() -> None:
    """
    Construct the shared datastore client, cache store and services.

    They are created once per process and handed to routes through the
    application state.
    """
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT.value}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    store = SupabasePropertyStore.from_settings(settings)
    cache = build_cache_store(settings)
    policy = CachePolicy.from_settings(settings)
    invalidator = CacheInvalidator(cache, policy)

    app.state.property_store = store
    app.state.cache_store = cache
    app.state.cache_invalidator = invalidator
    app.state.property_service = PropertyService(
        store,
        cache,
        policy,
        default_page_size=settings.DEFAULT_PAGE_SIZE,
        max_page_size=settings.MAX_PAGE_SIZE,
        public_status=settings.PUBLIC_LISTING_STATUS,
    )
    app.state.property_admin = PropertyAdminService(store, invalidator)
    logger.info(f"Cache backend: {cache.backend}")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """
    Close the datastore client and the cache connection.
    """
    logger.info(f"Shutting down {settings.PROJECT_NAME}")
    await app.state.property_store.close()
    await app.state.cache_store.close()
