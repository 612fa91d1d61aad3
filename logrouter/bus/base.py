"""Bus transport seam: MessageBus protocol and message types.

The service never talks to a transport client directly.  Everything that
publishes, subscribes or issues a request goes through a ``MessageBus``:

                                  ┌──────────────────┐
  ControlPlane ──subscribe()────► │                  │ ◄── NatsBus      (production)
  Router       ──subscribe(">")─► │   MessageBus     │
  Adapters     ──subscribe("*")─► │                  │ ◄── InMemoryBus  (memory://, tests)
  Directory    ──request()──────► │                  │
                                  └──────────────────┘

Delivery semantics are the transport's: at-most-once, best effort, ordered
per subscription only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable


@dataclass(frozen=True)
class Message:
    """One message received from (or about to be published on) the bus."""

    subject: str
    data: bytes = b""
    reply: str | None = None

    def text(self) -> str:
        """Decode the payload as UTF-8, replacing undecodable bytes."""
        return self.data.decode("utf-8", errors="replace")


# Coroutine invoked once per delivered message.
MessageHandler = Callable[[Message], Awaitable[None]]


class Subscription(ABC):
    """Handle to a live subscription; owned by whoever created it."""

    subject: str

    @abstractmethod
    async def unsubscribe(self) -> None:
        """Stop delivery.  In-flight handler invocations are not interrupted."""


class MessageBus(ABC):
    """Abstract message bus.  Implementations must be safe for concurrent async use."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying transport.  Failure here is fatal for the service."""

    @abstractmethod
    async def close(self) -> None:
        """Drop every subscription and close the transport."""

    @abstractmethod
    async def publish(self, subject: str, data: bytes, reply: str | None = None) -> None:
        """Fire-and-forget publish of *data* on *subject*."""

    @abstractmethod
    async def request(self, subject: str, data: bytes, timeout: float) -> Message:
        """Publish *data* and wait up to *timeout* seconds for one reply.

        Raises:
            BusTimeoutError:      nobody answered in time.
            BusNoRespondersError: nobody is subscribed to *subject*.
            BusError:             any other transport failure.
        """

    @abstractmethod
    async def subscribe(self, subject: str, handler: MessageHandler) -> Subscription:
        """Deliver every message matching *subject* (wildcards allowed) to *handler*."""

    async def respond(self, message: Message, data: bytes) -> None:
        """Answer a request.  No-op when *message* carries no reply subject."""
        if message.reply:
            await self.publish(message.reply, data)
