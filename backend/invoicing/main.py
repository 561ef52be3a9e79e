"""
Main FastAPI application.

WHY: This is the entry point for the application. It configures logging,
middleware, routes and exception handlers.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from invoicing.core.config import settings
from invoicing.core.exceptions import AppException
from invoicing.core.exception_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    generic_exception_handler,
)
from invoicing.db.session import engine
from invoicing.middleware import RequestContextMiddleware
from invoicing.api import companies, clients, invoices, payments, dashboard


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    WHY: Factory pattern allows easier testing with different configurations
    and makes it possible to create multiple app instances if needed.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Invoicing API: companies, clients, invoices and payments",
        version=settings.VERSION,
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
    )

    # Register exception handlers
    # WHY: Exception handlers ensure consistent error responses across the API
    # and prevent sensitive data leaks in error messages
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Request ID and timing for every request
    app.add_middleware(RequestContextMiddleware)

    # Configure CORS
    # WHY: The frontend runs on a different port/domain in development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint
    # WHY: Load balancers and monitoring tools need a simple endpoint
    # to verify the service is running.
    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Health check endpoint (no database access)."""
        return {
            "status": "healthy",
            "version": settings.VERSION,
        }

    @app.on_event("shutdown")
    async def shutdown_event():
        """Close pooled database connections."""
        await engine.dispose()
        logger.info("Database engine disposed")

    # Register API routers
    app.include_router(companies.router, prefix=settings.API_PREFIX)
    app.include_router(clients.router, prefix=settings.API_PREFIX)
    app.include_router(invoices.router, prefix=settings.API_PREFIX)
    app.include_router(payments.invoice_payments_router, prefix=settings.API_PREFIX)
    app.include_router(payments.router, prefix=settings.API_PREFIX)
    app.include_router(dashboard.router, prefix=settings.API_PREFIX)

    return app


# Create app instance
app = create_app()
