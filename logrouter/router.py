"""Router: the catch-all subscriber feeding the live ``logs`` stream."""

from __future__ import annotations

from logrouter.adapters.base import RedactFn
from logrouter.bus.base import Message, MessageBus, Subscription
from logrouter.logging import bind_message_context, clear_message_context, get_logger
from logrouter.streaming.broadcaster import StreamBroadcaster
from logrouter.subjects import ROUTER_PATTERN, STREAM_LOGS, is_excluded

log = get_logger(__name__)


class Router:
    """Redacts every bus message and broadcasts it as a routed record.

    Records look like ``{"subject", "body", "level": "debug", "user": "system"}``.
    Adapters do not consume them; they subscribe to the bus themselves.
    """

    def __init__(
        self,
        bus: MessageBus,
        redact: RedactFn,
        broadcaster: StreamBroadcaster,
        stream: str = STREAM_LOGS,
        pattern: str = ROUTER_PATTERN,
    ) -> None:
        self._bus = bus
        self._redact = redact
        self._broadcaster = broadcaster
        self._stream = stream
        self._pattern = pattern
        self._subscription: Subscription | None = None

    async def start(self) -> None:
        self._subscription = await self._bus.subscribe(self._pattern, self._on_message)
        log.info("router_started", pattern=self._pattern, stream=self._stream)

    async def stop(self) -> None:
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None

    async def _on_message(self, message: Message) -> None:
        if is_excluded(message.subject):
            return
        bind_message_context(subject=message.subject)
        try:
            body = await self._redact(message.text())
            self._broadcaster.publish(
                self._stream,
                {"subject": message.subject, "body": body, "level": "debug", "user": "system"},
            )
        finally:
            clear_message_context()
