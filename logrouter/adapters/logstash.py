"""Logstash adapter: ships every message as JSON over HTTP.

Each redacted message is POSTed as ``{"subject": ..., "message": ...}`` to
``http://<hostname>:<port>``.  A failed send is logged and the message is
dropped; there is no retry and no queue.
"""

from __future__ import annotations

from typing import Any, ClassVar

import httpx
from pydantic import Field

from logrouter.adapters.base import AdapterConfig, AdapterContext, BaseAdapter
from logrouter.logging import get_logger

log = get_logger(__name__)

INITIAL_PROBE = {"service": "initial"}


class LogstashConfig(AdapterConfig):
    hostname: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    timeout: float | None = Field(default=None, gt=0, le=60)


class LogstashAdapter(BaseAdapter):
    KIND: ClassVar[str] = "logstash"
    Config = LogstashConfig

    config: LogstashConfig

    def __init__(self, config: LogstashConfig, context: AdapterContext) -> None:
        super().__init__(config, context)
        self._client: httpx.AsyncClient | None = None

    @property
    def url(self) -> str:
        return f"http://{self.config.hostname}:{self.config.port}"

    async def open(self) -> None:
        timeout = self.config.timeout or self._context.http_timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=self._context.transport,
            headers={"Content-Type": "application/json"},
        )
        # An unreachable endpoint is not a configuration error.
        await self._post(INITIAL_PROBE)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def deliver(self, subject: str, body: str) -> None:
        await self._post({"subject": subject, "message": body})

    async def _post(self, payload: dict[str, Any]) -> bool:
        if self._client is None:
            return False
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            log.warning("logstash_send_failed", url=self.url, error=str(exc))
            return False
        if response.is_error:
            log.warning("logstash_send_rejected", url=self.url, status=response.status_code)
            return False
        return True
