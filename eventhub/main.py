"""Application factory and top-level wiring.

``create_app`` brings together configuration, database bootstrap, the audit
interceptor, middlewares, error handlers and the API routers. Importing this
module builds the process-wide ``app`` that uvicorn serves.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import settings
from .core.errors import (
    TierReassignmentError,
    http_exception_handler,
    tier_reassignment_handler,
    validation_exception_handler,
)
from .core.logging import configure_logging
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .models import build_entity_registry
from .routers import api_audit, api_events, api_hardware, api_sponsors, api_teams
from .services.audit import attach_audit_hooks

logger = logging.getLogger(__name__)


def create_app(*, audit: bool | None = None, bootstrap_db: bool = True) -> FastAPI:
    """Build a configured FastAPI application.

    ``audit`` overrides ``settings.AUDIT_ENABLED``. Pass
    ``bootstrap_db=False`` when the schema is managed outside the app.
    """

    app = FastAPI(title=settings.APP_NAME, version=__version__)

    # ``create_all`` covers brand-new databases, ``run_migrations`` upgrades
    # existing installations in place.
    if bootstrap_db:
        Base.metadata.create_all(bind=engine)
        run_migrations(engine)

    if settings.AUDIT_ENABLED if audit is None else audit:
        attach_audit_hooks(build_entity_registry())

    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.APP_ENV != "dev")
    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    # Added last so it wraps everything else and every log line has an id.
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(TierReassignmentError, tier_reassignment_handler)

    for module in (api_hardware, api_sponsors, api_events, api_teams, api_audit):
        app.include_router(module.router)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    Instrumentator().instrument(app).expose(app, include_in_schema=False)

    logger.info(
        "app.created",
        extra={"extra_data": {"env": settings.APP_ENV, "audit": bool(settings.AUDIT_ENABLED if audit is None else audit)}},
    )
    return app


def run() -> None:
    """Console entry point: serve the API with uvicorn."""

    import uvicorn

    uvicorn.run("eventhub.main:app", host=settings.HOST, port=settings.PORT, log_config=None)


configure_logging()
app = create_app()


__all__ = ["app", "create_app", "run"]
