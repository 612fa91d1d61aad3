"""Adapter layer: sink implementations keyed by wire ``type``.

Replay at startup walks ``ADAPTER_TYPES`` in declaration order, so the
mandatory basic adapter always comes first.
"""

from logrouter.adapters.base import AdapterContext, BaseAdapter, RedactFn
from logrouter.adapters.basic import BasicAdapter
from logrouter.adapters.logstash import LogstashAdapter
from logrouter.adapters.sentry import SentryAdapter
from logrouter.adapters.stream import StreamAdapter

ADAPTER_TYPES: dict[str, type[BaseAdapter]] = {
    BasicAdapter.KIND: BasicAdapter,
    LogstashAdapter.KIND: LogstashAdapter,
    SentryAdapter.KIND: SentryAdapter,
    StreamAdapter.KIND: StreamAdapter,
}

MANDATORY_KIND = BasicAdapter.KIND

__all__ = [
    "ADAPTER_TYPES",
    "MANDATORY_KIND",
    "AdapterContext",
    "BaseAdapter",
    "RedactFn",
    "BasicAdapter",
    "LogstashAdapter",
    "SentryAdapter",
    "StreamAdapter",
]
