"""FastAPI entrypoint and HTTP routes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.ext.asyncio import AsyncEngine

from wardrobe_intake.api.dependencies import Services
from wardrobe_intake.api.routers import garments, videos
from wardrobe_intake.config.settings import Settings, get_settings
from wardrobe_intake.core.exceptions import NO_STORE_HEADERS, IntakeError, intake_exception_handler
from wardrobe_intake.db.session import build_engine, build_session_factory, init_db
from wardrobe_intake.monitoring.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    engine: AsyncEngine | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Initialise the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings)

    engine = engine or build_engine(settings.database_url)
    if services is None:
        services = Services.build(settings, build_session_factory(engine))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await init_db(engine)
        logger.info("Wardrobe intake API started (environment=%s)", settings.environment)
        try:
            yield
        finally:
            await services.close()
            await engine.dispose()

    app = FastAPI(
        title="Wardrobe Intake API",
        version="0.1.0",
        docs_url="/docs" if settings.environment != "prod" else None,
        redoc_url="/redoc" if settings.environment != "prod" else None,
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_exception_handler(IntakeError, intake_exception_handler)

    @app.middleware("http")
    async def no_store(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api/"):
            response.headers.update(NO_STORE_HEADERS)
        return response

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple health endpoint used for readiness probes."""

        return {"status": "ok"}

    @app.get("/metrics", tags=["system"])
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(videos.router)
    app.include_router(garments.router)
    return app


app = create_app()
