"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crm_contacts import __version__
from crm_contacts.auth.router import router as auth_router
from crm_contacts.config import get_settings
from crm_contacts.contacts.router import router as contacts_router
from crm_contacts.contacts.verification_router import router as verification_router
from crm_contacts.documents.router import router as documents_router
from crm_contacts.notifications.email import close_email_provider
from crm_contacts.ratings.router import router as ratings_router
from crm_contacts.roles.router import router as roles_router
from crm_contacts.sales.client import close_sales_client
from crm_contacts.sales.router import router as sales_router
from crm_contacts.shared.database import get_database_manager
from crm_contacts.shared.exceptions import AppError
from crm_contacts.shared.logging import get_logger, setup_logging
from crm_contacts.shared.middleware import CorrelationIdMiddleware
from crm_contacts.users.router import router as users_router

# Register every table on the shared metadata
import crm_contacts.auth.models  # noqa: F401
import crm_contacts.contacts.models  # noqa: F401
import crm_contacts.documents.models  # noqa: F401
import crm_contacts.ratings.models  # noqa: F401

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()
    db_manager = get_database_manager()

    logger.info("Application starting", extra={"env": settings.app_env})

    if settings.create_tables_on_startup:
        await db_manager.create_all()
        logger.info("Database tables ensured")

    yield

    logger.info("Shutting down application")
    await close_sales_client()
    await close_email_provider()
    await db_manager.close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="CRM Contacts API",
        description="Contacts, verification, ratings, documents and sales lookups",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Map domain exceptions to HTTP responses
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "code": exc.code, "error": exc.message},
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc) or "Internal server error"},
        )

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=prefix)
    app.include_router(contacts_router, prefix=prefix)
    app.include_router(verification_router, prefix=prefix)
    app.include_router(ratings_router, prefix=prefix)
    app.include_router(documents_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)
    app.include_router(roles_router, prefix=prefix)
    app.include_router(sales_router, prefix=prefix)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
