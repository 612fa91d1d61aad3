"""In-process MessageBus implementation.

Selected with a ``memory://`` bus URL for local development and used by the
test-suite to wire adapters, registry, router and control plane end to end
without a broker.

Each subscription owns a FIFO queue drained by one worker task, mirroring
how a broker client dispatches callbacks: ordering is preserved per
subscription while distinct subscriptions run concurrently.
"""

from __future__ import annotations

import asyncio
import uuid

from logrouter.bus.base import Message, MessageBus, MessageHandler, Subscription
from logrouter.exceptions import BusError, BusNoRespondersError, BusTimeoutError
from logrouter.logging import get_logger
from logrouter.subjects import INBOX_PREFIX, subject_matches

log = get_logger(__name__)


class InMemorySubscription(Subscription):
    def __init__(self, bus: "InMemoryBus", subject: str, handler: MessageHandler) -> None:
        self.subject = subject
        self.active = True
        self._bus = bus
        self._handler = handler
        self._queue: asyncio.Queue[Message] = asyncio.Queue()
        self._busy = False
        self._worker = asyncio.create_task(self._run(), name=f"sub:{subject}")

    @property
    def idle(self) -> bool:
        return self._queue.empty() and not self._busy

    def deliver(self, message: Message) -> None:
        if self.active:
            self._queue.put_nowait(message)

    async def _run(self) -> None:
        while self.active:
            message = await self._queue.get()
            self._busy = True
            try:
                await self._handler(message)
            except Exception as exc:
                # A failing callback must not kill the subscription.
                log.error(
                    "bus_handler_error",
                    subject=message.subject,
                    pattern=self.subject,
                    error=str(exc),
                )
            finally:
                self._busy = False
                self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._remove(self)
        # Queued but undelivered messages are dropped.
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        # An in-flight handler runs to completion; the worker exits after it.
        if not self._busy:
            self._worker.cancel()


class InMemoryBus(MessageBus):
    """Single-process bus with broker-like wildcard semantics.

    Usage::

        bus = InMemoryBus()
        await bus.connect()
        await bus.subscribe("logger.*", handler)
        await bus.publish("logger.set", b'{"type": "basic"}')
        await bus.drain()     # wait until every handler has run
    """

    def __init__(self) -> None:
        self._subscriptions: list[InMemorySubscription] = []
        self._connected = False

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def connect(self) -> None:
        self._connected = True

    async def close(self) -> None:
        for sub in list(self._subscriptions):
            await sub.unsubscribe()
        self._connected = False

    async def publish(self, subject: str, data: bytes, reply: str | None = None) -> None:
        self._ensure_connected()
        message = Message(subject=subject, data=data, reply=reply)
        for sub in self._matching(subject):
            sub.deliver(message)

    async def request(self, subject: str, data: bytes, timeout: float) -> Message:
        self._ensure_connected()
        if not self._matching(subject):
            raise BusNoRespondersError(subject)

        loop = asyncio.get_running_loop()
        answer: asyncio.Future[Message] = loop.create_future()

        async def _on_reply(message: Message) -> None:
            if not answer.done():
                answer.set_result(message)

        inbox = f"{INBOX_PREFIX}{uuid.uuid4().hex}"
        sub = await self.subscribe(inbox, _on_reply)
        try:
            await self.publish(subject, data, reply=inbox)
            return await asyncio.wait_for(answer, timeout=timeout)
        except asyncio.TimeoutError:
            raise BusTimeoutError(subject, timeout) from None
        finally:
            await sub.unsubscribe()

    async def subscribe(self, subject: str, handler: MessageHandler) -> Subscription:
        self._ensure_connected()
        sub = InMemorySubscription(self, subject, handler)
        self._subscriptions.append(sub)
        return sub

    async def drain(self) -> None:
        """Wait until every queued message has been handled.

        Handlers that publish cause further deliveries, so keep joining until
        a full pass finds nothing left to do.
        """
        while True:
            pending = [s for s in self._subscriptions if not s.idle]
            if not pending:
                return
            await asyncio.gather(*(s.join() for s in pending))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _matching(self, subject: str) -> list[InMemorySubscription]:
        return [s for s in self._subscriptions if subject_matches(s.subject, subject)]

    def _remove(self, sub: InMemorySubscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise BusError("In-memory bus is not connected")
