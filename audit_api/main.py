"""
FastAPI Application Entry Point

This is the main application module that sets up the FastAPI app,
configures middleware, and includes all routers.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from audit_api.config import Settings, settings
from audit_api.database import Database
from audit_api.errors import AuditServiceError, StoreError
from audit_api.routers import events, health
from audit_api.services.event_store import EventCollection

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())[1:])
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def create_app(app_settings: Settings = settings, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    The database handle lives on ``app.state`` and is handed to request
    handlers through dependencies.
    """
    database = database or Database(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        - Startup: open the connection pool and make sure the events table exists
        - Shutdown: close database connections gracefully
        """
        logger.info(f"Starting {app_settings.app_name}...")
        await database.connect()

        if app_settings.db_ensure_schema:
            try:
                async with database.acquire() as conn:
                    await EventCollection(conn, table=app_settings.events_table).ensure_schema()
            except Exception:
                logger.error("Schema setup failed, closing connection pool")
                await database.disconnect()
                raise

        logger.info(f"{app_settings.app_name} started successfully")

        yield

        logger.info(f"Shutting down {app_settings.app_name}...")
        await database.disconnect()
        logger.info(f"{app_settings.app_name} stopped")

    expose_docs = app_settings.expose_api_docs

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="""
        # Audit API documentation

        Record, query, replace and delete audit events.

        List queries filter on event fields by query parameter: a repeated
        parameter matches any of its values. Results are capped at 100
        events, newest first.
        """,
        docs_url="/docs" if expose_docs else None,
        redoc_url=None,
        openapi_url=app_settings.openapi_url if expose_docs else None,
        lifespan=lifespan
    )
    app.state.database = database
    app.state.settings = app_settings

    # ========================================================================
    # Middleware
    # ========================================================================

    if app_settings.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Location"],
        )

    @app.middleware("http")
    async def add_request_timing(request: Request, call_next):
        """Add request timing header for monitoring."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests."""
        logger.debug(f"{request.method} {request.url.path}")
        response = await call_next(request)
        return response

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    @app.exception_handler(AuditServiceError)
    async def audit_error_handler(request: Request, exc: AuditServiceError):
        if isinstance(exc, StoreError):
            logger.error(f"{request.method} {request.url.path} failed: {exc.__cause__!r}")
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(400, f"Incorrect body: {_describe_validation_errors(exc)}")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler.

        Returns generic error responses to prevent information leakage.
        Detailed errors are logged internally.
        """
        logger.exception(f"Unhandled exception: {exc}")
        return _error(500, "Internal server error")

    # ========================================================================
    # Routers
    # ========================================================================

    app.include_router(events.router)
    app.include_router(health.router)

    @app.get("/", tags=["root"])
    async def root():
        """Returns basic service information."""
        return {
            "service": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "running"
        }

    return app


app = create_app()


# ============================================================================
# Development Server
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "audit_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
