"""Sentry adapter: forwards messages as crash-report events."""

from __future__ import annotations

import asyncio
from typing import ClassVar

import sentry_sdk
from pydantic import Field

from logrouter.adapters.base import AdapterConfig, BaseAdapter
from logrouter.exceptions import AdapterConfigError
from logrouter.logging import get_logger

log = get_logger(__name__)

ERROR_MARKER = ".error"
FLUSH_TIMEOUT = 2.0


def level_for(subject: str) -> str:
    """``error`` for subjects carrying the error marker, ``info`` otherwise."""
    return "error" if ERROR_MARKER in subject else "info"


class SentryConfig(AdapterConfig):
    dsn: str = Field(min_length=1)
    environment: str | None = None


class SentryAdapter(BaseAdapter):
    """Sends ``<subject> : '<body>'`` through ``sentry_sdk.capture_message``.

    The sentry client is process-global, so at most one instance of this
    adapter is meaningful at a time; the registry already guarantees that.
    """

    KIND: ClassVar[str] = "sentry"
    SUPPORTS_DIRECT_LOG: ClassVar[bool] = True
    Config = SentryConfig

    config: SentryConfig

    async def open(self) -> None:
        try:
            sentry_sdk.init(
                dsn=self.config.dsn,
                environment=self.config.environment,
                default_integrations=False,
            )
        except ValueError as exc:
            # sentry_sdk raises BadDsn, a ValueError, for malformed DSNs.
            raise AdapterConfigError(self.KIND, f"Invalid dsn: {exc}") from exc
        log.info("sentry_adapter_opened", environment=self.config.environment)

    async def close(self) -> None:
        # Flushes pending events, then stops the transport thread.
        await asyncio.to_thread(sentry_sdk.get_client().close, timeout=FLUSH_TIMEOUT)
        log.info("sentry_adapter_closed")

    async def deliver(self, subject: str, body: str) -> None:
        await self.log(subject, body, level_for(subject), "system")

    async def log(self, subject: str, body: str, level: str, user: str) -> None:
        try:
            sentry_sdk.capture_message(f"{subject} : '{body}'", level=level)
        except Exception as exc:
            log.error("sentry_capture_failed", error=str(exc))
