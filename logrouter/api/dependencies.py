"""API layer: FastAPI dependency injection.

The service is built once in ``create_app()`` and hung on ``app.state``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from logrouter.config import Settings
from logrouter.service import LogRouterService


def get_service(request: Request) -> LogRouterService:
    return request.app.state.service  # type: ignore[no-any-return]


def get_config(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


ServiceDep = Annotated[LogRouterService, Depends(get_service)]
ConfigDep = Annotated[Settings, Depends(get_config)]
