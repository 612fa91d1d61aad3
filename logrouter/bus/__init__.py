"""Bus transport layer.

Provides the seam between the service and the publish/subscribe transport.

Current implementations:
  - NatsBus      production, nats-py client
  - InMemoryBus  ``memory://`` URLs and the test-suite

Quick start::

    from logrouter.bus import create_bus

    bus = create_bus("nats://127.0.0.1:4222")
    await bus.connect()
    await bus.subscribe("logger.*", handler)
"""

from logrouter.bus.base import Message, MessageBus, MessageHandler, Subscription
from logrouter.bus.memory import InMemoryBus

MEMORY_SCHEME = "memory://"


def create_bus(url: str, connect_timeout: float = 5.0) -> MessageBus:
    """Return the MessageBus implementation selected by *url*'s scheme."""
    if url.startswith(MEMORY_SCHEME):
        return InMemoryBus()

    from logrouter.bus.nats import NatsBus

    return NatsBus(url, connect_timeout=connect_timeout)


__all__ = [
    "Message",
    "MessageBus",
    "MessageHandler",
    "Subscription",
    "InMemoryBus",
    "create_bus",
]
