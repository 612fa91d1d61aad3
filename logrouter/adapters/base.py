"""Adapter layer: BaseAdapter interface.

An adapter is a named sink.  Once ``manage()`` is called it subscribes to the
given subject patterns on the bus, and every matching message is redacted
and handed to ``deliver()``.  ``stop()`` unsubscribes and releases the sink.

Every concrete adapter must:
  1. Set ``KIND`` (the ``type`` value of its wire config, e.g. ``"basic"``)
  2. Set ``Config`` to a pydantic model describing that wire config
  3. Implement :meth:`deliver`
  4. Optionally override :meth:`open` / :meth:`close` for sink resources
  5. Set ``SUPPORTS_DIRECT_LOG`` and implement :meth:`log` if routed
     ``logger.log`` records should be written to it as well

Delivery failures are logged by the adapter and never reach the bus.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from logrouter.bus.base import Message, MessageBus, Subscription
from logrouter.exceptions import AdapterConfigError
from logrouter.logging import bind_message_context, clear_message_context, get_logger
from logrouter.streaming.broadcaster import StreamBroadcaster
from logrouter.subjects import is_excluded

log = get_logger(__name__)

RedactFn = Callable[[str], Awaitable[str]]


@dataclass
class AdapterContext:
    """Shared collaborators handed to every adapter at construction."""

    bus: MessageBus
    broadcaster: StreamBroadcaster | None = None
    http_timeout: float = 1.0
    transport: httpx.AsyncBaseTransport | None = None
    router_stream: str | None = None


class AdapterConfig(BaseModel):
    """Base wire config.  Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    type: str


def parse_config(kind: str, model: type[AdapterConfig], raw: bytes | str) -> AdapterConfig:
    """Decode *raw* into *model*, raising AdapterConfigError on any problem."""
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise AdapterConfigError(kind, f"Invalid configuration: {exc}") from exc
    if not isinstance(data, dict):
        raise AdapterConfigError(kind, "Invalid configuration: expected a JSON object")
    data["type"] = kind
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise AdapterConfigError(kind, f"Invalid configuration: {problems}") from exc


class BaseAdapter(ABC):
    KIND: ClassVar[str] = ""
    SUPPORTS_DIRECT_LOG: ClassVar[bool] = False
    Config: ClassVar[type[AdapterConfig]] = AdapterConfig

    def __init__(self, config: AdapterConfig, context: AdapterContext) -> None:
        self.config = config
        self._context = context
        self._subscriptions: list[Subscription] = []
        self._redact: RedactFn | None = None

    @classmethod
    async def from_config(cls, raw: bytes | str, context: AdapterContext) -> "BaseAdapter":
        """Build and open an adapter from raw wire config.

        Raises:
            AdapterConfigError: the config is malformed or the sink is unusable.
        """
        config = parse_config(cls.KIND, cls.Config, raw)
        adapter = cls(config, context)
        await adapter.open()
        return adapter

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Acquire sink resources.  Raise AdapterConfigError if unusable."""

    async def close(self) -> None:
        """Release sink resources."""

    async def manage(self, subjects: tuple[str, ...] | list[str], redact: RedactFn) -> None:
        """Subscribe to every pattern in *subjects*.

        Raises:
            BusError: a subscription could not be created.  Patterns already
                subscribed stay registered until :meth:`stop`.
        """
        self._redact = redact
        for pattern in subjects:
            self._subscriptions.append(await self._context.bus.subscribe(pattern, self._on_message))
        log.info("adapter_managing", adapter=self.KIND, patterns=list(subjects))

    async def stop(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in subscriptions:
            await sub.unsubscribe()
        await self.close()
        log.info("adapter_stopped", adapter=self.KIND)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _on_message(self, message: Message) -> None:
        if is_excluded(message.subject) or self._redact is None:
            return
        bind_message_context(subject=message.subject, adapter=self.KIND)
        try:
            body = await self._redact(message.text())
            await self.deliver(message.subject, body)
        finally:
            clear_message_context()

    @abstractmethod
    async def deliver(self, subject: str, body: str) -> None:
        """Send one redacted message to the sink.  Must not raise."""

    async def log(self, subject: str, body: str, level: str, user: str) -> None:
        """Direct write path for routed ``logger.log`` records."""
        raise NotImplementedError(f"{self.KIND} adapter has no direct log path")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def name(self) -> str:
        return self.KIND

    def to_dict(self) -> dict[str, Any]:
        return self.config.model_dump(mode="json")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.KIND!r} subscriptions={len(self._subscriptions)}>"
