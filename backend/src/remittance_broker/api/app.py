"""FastAPI application factory for the remittance broker."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ..core.config import Settings, load_settings
from ..core.errors import ErrorKind, OperationResult, StorageError
from ..core.observability import configure_logging, get_metrics, get_metrics_content_type
from ..services.container import BrokerContainer
from ..services.verification import sweep_periodically
from .routes import callback_router, router

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[BrokerContainer] = None,
    start_sweeper: bool = True,
) -> FastAPI:
    settings = settings or (container.settings if container else load_settings())
    configure_logging(settings)
    container = container or BrokerContainer(settings)

    app = FastAPI(
        title="Remittance Broker API",
        description="Transfer orders, identity verification and delay handling for agent-driven remittances",
        version="1.0.0",
    )
    app.state.container = container
    app.state.sweeper = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("storage_unavailable", path=request.url.path, error=str(exc))
        result = OperationResult.failure(ErrorKind.SYSTEM_ERROR, "Service temporarily unavailable")
        return JSONResponse(result.to_payload(), status_code=503)

    @app.on_event("startup")
    async def startup_event() -> None:
        logger.info(
            "application_startup",
            environment=settings.environment,
            session_backend=settings.session_backend,
        )
        if start_sweeper:
            app.state.sweeper = asyncio.create_task(
                sweep_periodically(container.verification, settings.session_sweep_interval_seconds)
            )

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        sweeper = app.state.sweeper
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        logger.info("application_shutdown")

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        database_ok = await asyncio.to_thread(container.database.ping)
        return {
            "status": "healthy" if database_ok else "degraded",
            "version": app.version,
            "environment": settings.environment,
            "dependencies": {"database": "ok" if database_ok else "unavailable"},
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=get_metrics(), media_type=get_metrics_content_type())

    app.include_router(router)
    app.include_router(callback_router)
    return app


__all__ = ["create_app"]
