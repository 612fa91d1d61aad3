"""NATS-backed MessageBus (nats-py)."""

from __future__ import annotations

from typing import Any

import nats
from nats.aio.client import Client as NatsClient
from nats.aio.msg import Msg
from nats.aio.subscription import Subscription as NatsSubscriptionHandle
from nats.errors import Error as NatsError
from nats.errors import NoRespondersError
from nats.errors import TimeoutError as NatsTimeoutError

from logrouter.bus.base import Message, MessageBus, MessageHandler, Subscription
from logrouter.exceptions import BusError, BusNoRespondersError, BusTimeoutError
from logrouter.logging import get_logger

log = get_logger(__name__)


def _to_message(msg: Msg) -> Message:
    return Message(subject=msg.subject, data=msg.data or b"", reply=msg.reply or None)


class NatsSubscription(Subscription):
    def __init__(self, subject: str, handle: NatsSubscriptionHandle) -> None:
        self.subject = subject
        self._handle = handle

    async def unsubscribe(self) -> None:
        try:
            await self._handle.unsubscribe()
        except NatsError as exc:
            # Already gone (connection closed, or unsubscribed by a drain).
            log.warning("bus_unsubscribe_failed", pattern=self.subject, error=str(exc))


class NatsBus(MessageBus):
    """MessageBus over a NATS connection.

    nats-py runs each subscription callback on a dedicated task, awaiting one
    message at a time, which gives the per-subscription ordering the service
    relies on.
    """

    def __init__(self, url: str, connect_timeout: float = 5.0, name: str = "logrouter") -> None:
        self._url = url
        self._connect_timeout = connect_timeout
        self._name = name
        self._nc: NatsClient | None = None

    async def connect(self) -> None:
        try:
            self._nc = await nats.connect(
                servers=[self._url],
                name=self._name,
                connect_timeout=self._connect_timeout,
                error_cb=self._on_error,
                disconnected_cb=self._on_disconnected,
                reconnected_cb=self._on_reconnected,
            )
        except (NatsError, OSError) as exc:
            raise BusError(f"Could not connect to {self._url}: {exc}", context={"url": self._url}) from exc
        log.info("bus_connected", url=self._url)

    async def close(self) -> None:
        if self._nc is None:
            return
        try:
            await self._nc.drain()
        except NatsError as exc:
            log.warning("bus_drain_failed", error=str(exc))
            await self._nc.close()
        self._nc = None
        log.info("bus_closed", url=self._url)

    async def publish(self, subject: str, data: bytes, reply: str | None = None) -> None:
        try:
            await self._client.publish(subject, data, reply=reply or "")
        except NatsError as exc:
            raise BusError(f"Publish on '{subject}' failed: {exc}", context={"subject": subject}) from exc

    async def request(self, subject: str, data: bytes, timeout: float) -> Message:
        try:
            msg = await self._client.request(subject, data, timeout=timeout)
        except NoRespondersError:
            raise BusNoRespondersError(subject) from None
        except NatsTimeoutError:
            raise BusTimeoutError(subject, timeout) from None
        except NatsError as exc:
            raise BusError(f"Request on '{subject}' failed: {exc}", context={"subject": subject}) from exc
        return _to_message(msg)

    async def subscribe(self, subject: str, handler: MessageHandler) -> Subscription:
        async def _callback(msg: Msg) -> None:
            try:
                await handler(_to_message(msg))
            except Exception as exc:
                log.error("bus_handler_error", subject=msg.subject, pattern=subject, error=str(exc))

        try:
            handle = await self._client.subscribe(subject, cb=_callback)
        except NatsError as exc:
            raise BusError(f"Subscribe to '{subject}' failed: {exc}", context={"subject": subject}) from exc
        return NatsSubscription(subject, handle)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def _client(self) -> NatsClient:
        if self._nc is None:
            raise BusError("NATS bus is not connected")
        return self._nc

    async def _on_error(self, exc: Exception) -> None:
        log.error("bus_error", error=str(exc))

    async def _on_disconnected(self, *_: Any) -> None:
        log.warning("bus_disconnected", url=self._url)

    async def _on_reconnected(self, *_: Any) -> None:
        log.info("bus_reconnected", url=self._url)
