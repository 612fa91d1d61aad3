"""Stream adapter: pushes messages to live viewers of a named stream."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from logrouter.adapters.base import AdapterConfig, BaseAdapter
from logrouter.exceptions import AdapterConfigError
from logrouter.logging import get_logger
from logrouter.streaming.broadcaster import StreamBroadcaster

log = get_logger(__name__)


class StreamAdapterConfig(AdapterConfig):
    uuid: str = Field(min_length=1)


class StreamAdapter(BaseAdapter):
    """Publishes ``{"subject", "body", "level": "info"}`` on stream ``uuid``.

    Stopping the adapter closes the stream, which ends every attached
    viewer's iteration.
    """

    KIND: ClassVar[str] = "stream"
    Config = StreamAdapterConfig

    config: StreamAdapterConfig

    @property
    def broadcaster(self) -> StreamBroadcaster:
        assert self._context.broadcaster is not None
        return self._context.broadcaster

    async def open(self) -> None:
        if self._context.broadcaster is None:
            raise AdapterConfigError(self.KIND, "Live streaming is not available on this service")
        if self.config.uuid == self._context.router_stream:
            # Closing it on stop would disconnect the router's own viewers.
            raise AdapterConfigError(self.KIND, f"Stream '{self.config.uuid}' is reserved")

    async def close(self) -> None:
        if self._context.broadcaster is not None:
            self.broadcaster.close_stream(self.config.uuid)

    async def deliver(self, subject: str, body: str) -> None:
        record = {"subject": subject, "body": body, "level": "info"}
        viewers = self.broadcaster.publish(self.config.uuid, record)
        log.debug("stream_published", stream=self.config.uuid, viewers=viewers)
