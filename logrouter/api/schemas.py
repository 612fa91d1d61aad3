"""API layer: request and response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StreamHandshake(BaseModel):
    """First frame a live-stream viewer must send on ``/logs``."""

    token: str
    stream: str | None = Field(
        default=None,
        description="Stream to attach to. Defaults to the router's stream.",
    )


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    adapters: list[str] = Field(description="Active adapter kinds, in replay order.")
    directory_loaded: bool
