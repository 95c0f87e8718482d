"""OSC Licensing Portal API — FastAPI application factory."""


import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from osc_portal.core.config import settings
from osc_portal.core.exceptions import register_exception_handlers
from osc_portal.core.features import enabled_modules
from osc_portal.middleware.request_context import RequestContextMiddleware
from osc_portal.routers.account import router as account_router
from osc_portal.routers.audit import router as audit_router
from osc_portal.routers.auth import router as auth_router
from osc_portal.routers.catalog import router as catalog_router
from osc_portal.routers.company import router as company_router
from osc_portal.routers.permohonan import router as permohonan_router
from osc_portal.routers.profile import router as profile_router
from osc_portal.schemas.common import HealthResponse

API_PREFIX = "/api"


def _configure_logging() -> None:
    """Set up structured logging for the application."""
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url="/redoc" if settings.app_env == "development" else None,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Request context (ip / user agent / request id for audit rows) ---
    app.add_middleware(RequestContextMiddleware)

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- API routes (/api/*); module routers answer 404 when their flag is off ---
    for router in (
        auth_router,
        profile_router,
        company_router,
        account_router,
        audit_router,
        catalog_router,
        permohonan_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(
            app=settings.app_name, env=settings.app_env, modules=enabled_modules()
        )

    return app


app = create_app()
