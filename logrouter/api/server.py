"""API layer: FastAPI application factory.

``create_app()`` is the single entry point for building the app.  The
service is wired here so tests can pass their own settings and bus.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from logrouter import __version__
from logrouter.api.routes import health, stream
from logrouter.bus.base import MessageBus
from logrouter.config import Settings, get_settings
from logrouter.exceptions import LogRouterError
from logrouter.logging import configure_logging, get_logger
from logrouter.service import LogRouterService

log = get_logger(__name__)


def create_app(settings: Settings | None = None, bus: MessageBus | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (used in tests).
        bus:      Optional pre-built bus; defaults to the one ``settings.bus.url`` selects.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    app = FastAPI(
        title="logrouter",
        description="Redacting log router for a publish/subscribe message bus.",
        version=__version__,
    )

    service = LogRouterService(settings, bus=bus)
    app.state.settings = settings
    app.state.service = service

    @app.exception_handler(LogRouterError)
    async def _service_error(request: Request, exc: LogRouterError) -> JSONResponse:
        log.error("api_error", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=500, content={"error": exc.message})

    app.include_router(health.router)
    app.include_router(stream.router)

    @app.on_event("startup")
    async def startup() -> None:
        log.info("service_starting", version=__version__)
        await service.start()

    @app.on_event("shutdown")
    async def shutdown() -> None:
        await service.stop()

    return app
