"""GET /health: liveness and active adapters."""

from __future__ import annotations

from fastapi import APIRouter

from logrouter import __version__
from logrouter.api.dependencies import ServiceDep
from logrouter.api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health(service: ServiceDep) -> HealthResponse:
    return HealthResponse(
        status="ok" if service.running else "starting",
        version=__version__,
        uptime_seconds=round(service.uptime, 2),
        adapters=service.registry.active_kinds(),
        directory_loaded=service.directory.loaded,
    )
