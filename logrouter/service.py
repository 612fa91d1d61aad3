"""Service wiring: builds every component from Settings and runs them.

Startup order::

    filesystem → bus.connect → directory wait → adapter replay
               → control plane → router

``stop()`` unwinds in reverse.  Only a failed bus connection or a missing
basic adapter abort startup.
"""

from __future__ import annotations

import time

from logrouter.adapters import AdapterContext
from logrouter.bus import MessageBus, create_bus
from logrouter.config import Settings
from logrouter.control import ControlPlane
from logrouter.logging import get_logger
from logrouter.persistence import ConfigStore
from logrouter.redaction.directory import SecretDirectory
from logrouter.redaction.engine import Redactor
from logrouter.registry import AdapterRegistry
from logrouter.router import Router
from logrouter.streaming.broadcaster import StreamBroadcaster

log = get_logger(__name__)


class LogRouterService:
    """Owns the bus connection and every long-lived component.

    Usage::

        service = LogRouterService(Settings.load())
        await service.start()
        ...
        await service.stop()
    """

    def __init__(self, settings: Settings, bus: MessageBus | None = None) -> None:
        self.settings = settings
        self.bus = bus or create_bus(settings.bus.url, connect_timeout=settings.bus.connect_timeout)
        self.broadcaster = StreamBroadcaster(queue_size=settings.stream.queue_size)
        self.directory = SecretDirectory(
            self.bus,
            find_subject=settings.directory.find_subject,
            timeout=settings.bus.request_timeout,
        )
        self.redactor = Redactor(
            self.directory,
            marker=settings.redaction.marker,
            failure_sentinel=settings.redaction.failure_sentinel,
        )
        self.store = ConfigStore(settings.storage.state_path)
        self.registry = AdapterRegistry(
            AdapterContext(
                bus=self.bus,
                broadcaster=self.broadcaster,
                http_timeout=settings.adapters.http_timeout,
                router_stream=settings.stream.default_stream,
            ),
            self.store,
            self.redactor.redact,
        )
        self.control = ControlPlane(
            self.bus,
            self.registry,
            self.directory,
            update_subjects=settings.directory.update_subjects,
        )
        self.router = Router(
            self.bus,
            self.redactor.redact,
            self.broadcaster,
            stream=settings.stream.default_stream,
        )
        self.started_at: float | None = None

    @property
    def running(self) -> bool:
        return self.started_at is not None

    @property
    def uptime(self) -> float:
        return time.time() - self.started_at if self.started_at is not None else 0.0

    def prepare_filesystem(self) -> None:
        """Create the config directory and the default log file (never truncated)."""
        storage = self.settings.storage
        storage.config_dir.mkdir(parents=True, exist_ok=True)
        if storage.default_logfile is not None:
            storage.default_logfile.parent.mkdir(parents=True, exist_ok=True)
            storage.default_logfile.touch(exist_ok=True)

    async def start(self) -> None:
        """Bring the service up.

        Raises:
            BusError:           the bus connection could not be established.
            ConfigurationError: no basic adapter could be set up.
        """
        self.prepare_filesystem()
        await self.bus.connect()

        if self.settings.directory.wait_on_startup:
            await self.directory.wait_until_available(self.settings.directory.retry_interval)

        await self.registry.load_persisted(self.settings.storage.default_logfile)
        await self.control.start()
        await self.router.start()

        self.started_at = time.time()
        log.info("service_started", adapters=self.registry.active_kinds(), bus=self.settings.bus.url)

    async def stop(self) -> None:
        await self.router.stop()
        await self.control.stop()
        await self.registry.stop_all()
        self.broadcaster.close_all()
        await self.bus.close()
        self.started_at = None
        log.info("service_stopped")
