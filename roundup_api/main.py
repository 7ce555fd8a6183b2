"""
Round-Up Donation API Server
FastAPI application wiring: stores, routes, error envelopes
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from roundup_api import __version__
from roundup_api.api.routes import api_router
from roundup_api.core.config import Settings, get_settings
from roundup_api.core.errors import AppError
from roundup_api.core.logging import configure_logging
from roundup_api.core.secrets import ADMIN_INIT_KEY_SECRET, EncryptedFileSecretsStore, SecretsStore
from roundup_api.repositories.base import Store
from roundup_api.repositories.sql import SqlAlchemyStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events"""
    logger.info("Starting Round-Up Donation API...")

    await app.state.store.init()
    logger.info("Store initialized")

    yield

    logger.info("Shutting down Round-Up Donation API...")
    await app.state.store.close()
    logger.info("Cleanup completed")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure with the shared error envelope"""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"status": "fail", "message": _validation_message(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "fail" if exc.status_code < 500 else "error",
                "message": str(exc.detail),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Something went wrong!"},
        )


def build_secrets_store(settings: Settings) -> SecretsStore:
    return EncryptedFileSecretsStore(
        settings.SECRETS_FILE,
        settings.SECRET_KEY,
        seed={ADMIN_INIT_KEY_SECRET: settings.ADMIN_INIT_KEY or ""},
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    secrets_store: Optional[SecretsStore] = None,
) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant round-up donation service: organizations, transactions and donation reports",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store or SqlAlchemyStore.from_url(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    app.state.secrets_store = secrets_store or build_secrets_store(settings)

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API routes
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": settings.APP_NAME,
            "version": __version__,
            "docs": "/docs",
            "status": "healthy"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


def run() -> None:
    """Console entry point"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "roundup_api.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )


if __name__ == "__main__":
    run()
