"""FastAPI application wiring for the identity service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.errors import register_exception_handlers
from .api.routes import router as v1_router
from .config import Settings, get_settings
from .domain.service import RegistrationService
from .logging_config import configure_logging
from .repository import IdentityRepository
from .security.rate_limit import build_rate_limiter
from .security.tokens import TokenIssuer

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; configuration is resolved when the lifespan starts."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialise shared resources (Postgres pool, services) for the app lifecycle."""
        resolved = settings or get_settings()
        configure_logging(resolved.log_level)
        logger.info("starting %s %s", resolved.app_name, resolved.version)

        pool = ConnectionPool(
            resolved.database_url,
            min_size=resolved.db_pool_min_size,
            max_size=resolved.db_pool_max_size,
            timeout=resolved.db_timeout_seconds,
            open=False,
        )
        pool.open()
        repository = IdentityRepository(pool)
        app.state.pool = pool
        app.state.repository = repository
        app.state.registration_service = RegistrationService(
            repository, TokenIssuer.from_settings(resolved)
        )
        app.state.rate_limiter = build_rate_limiter(resolved)
        try:
            yield
        finally:
            pool.close()

    app = FastAPI(title="bank-identity", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        """Return a minimal liveness indicator used by orchestration systems."""
        return {"status": "ok"}

    @app.get("/readyz", tags=["health"])
    def readyz(request: Request, response: Response) -> dict[str, str]:
        """Report whether the identity store is reachable."""
        if request.app.state.repository.ping():
            return {"status": "ok"}
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(v1_router)
    return app


def run() -> None:
    """Start the service with uvicorn using the configured host and port."""
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.http_host, port=settings.http_port)


app = create_app()
