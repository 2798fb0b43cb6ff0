"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mailprefs import __version__
from mailprefs.core.config import Settings, get_settings
from mailprefs.core.exceptions import AuthenticationError, PreferenceCentreError, ValidationError
from mailprefs.core.logging_setup import configure_logging
from mailprefs.core.middleware import setup_middleware
from mailprefs.db.session import build_engine, build_session_factory, init_db
from mailprefs.services.audit_service import AuditStore, SqlAuditStore
from mailprefs.services.track_client import TrackClient

from mailprefs.api.admin import router as admin_router
from mailprefs.api.customers import router as customers_router
from mailprefs.api.health import router as health_router

logger = logging.getLogger("mailprefs")


def create_app(
    settings: Optional[Settings] = None,
    audit_store: Optional[AuditStore] = None,
    track_client: Optional[TrackClient] = None,
) -> FastAPI:
    """Build the app with its collaborators wired in.

    Settings are read once here. Tests pass their own store and client;
    in production both are built from settings.
    """
    if settings is None:
        settings = get_settings()
        configure_logging(settings)

    environment = "production" if settings.is_production else "development"
    logger.info("Starting %s (%s environment)", settings.APP_NAME, environment)

    engine = None
    if audit_store is None:
        engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        init_db(engine)
        audit_store = SqlAuditStore(build_session_factory(engine), settings.DISPLAY_TIMEZONE)
    owns_client = track_client is None
    if track_client is None:
        track_client = TrackClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down %s", settings.APP_NAME)
        if owns_client:
            track_client.close()
        if engine is not None:
            engine.dispose()
            logger.info("Database connection closed")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Self-service email preferences mirrored to Customer.io",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.audit_store = audit_store
    app.state.track_client = track_client

    setup_middleware(app)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("Rejected malformed request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Invalid request format"},
        )

    @app.exception_handler(AuthenticationError)
    async def authentication_handler(request: Request, exc: AuthenticationError):
        logger.warning("Rejected admin request to %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": "Unauthorized"},
            headers={"WWW-Authenticate": f'Basic realm="{exc.realm}"'},
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": exc.message})

    @app.exception_handler(PreferenceCentreError)
    async def platform_error_handler(request: Request, exc: PreferenceCentreError):
        logger.error("Unhandled error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal Server Error"},
        )

    app.include_router(health_router)
    app.include_router(customers_router)
    app.include_router(admin_router)

    return app
