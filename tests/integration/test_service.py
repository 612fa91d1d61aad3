"""Integration tests: LogRouterService wired end to end over the in-memory bus."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from logrouter.bus import InMemoryBus, Message
from logrouter.config import Settings
from logrouter.exceptions import ConfigurationError
from logrouter.service import LogRouterService
from logrouter.subjects import (
    DIRECTORY_FIND,
    DIRECTORY_SET,
    LOGGER_DEL,
    LOGGER_FIND,
    LOGGER_LOG,
    LOGGER_SET,
    STREAM_LOGS,
)

DATACENTERS = [{"name": "dc1", "password": "dc1-pass", "aws_access_key_id": "AKIA0001"}]


async def ask(bus: InMemoryBus, subject: str, payload: dict) -> Any:
    reply = await bus.request(subject, json.dumps(payload).encode(), timeout=1.0)
    return json.loads(reply.data)


async def start_service(settings: Settings, bus: InMemoryBus) -> LogRouterService:
    service = LogRouterService(settings, bus=bus)
    await service.start()

    async def directory(message: Message) -> None:
        await bus.respond(message, json.dumps(DATACENTERS).encode())

    await bus.subscribe(DIRECTORY_FIND, directory)
    return service


@pytest_asyncio.fixture
async def service(test_settings: Settings) -> AsyncGenerator[LogRouterService, None]:
    svc = await start_service(test_settings, InMemoryBus())
    yield svc
    await svc.stop()


def logfile_of(service: LogRouterService) -> Path:
    return Path(service.registry.get("basic").to_dict()["logfile"])


@pytest.mark.integration
class TestTrafficRedaction:
    async def test_directory_literals_never_reach_the_logfile(self, service: LogRouterService) -> None:
        await service.bus.publish("service.create.aws", b"auth with dc1-pass / AKIA0001")
        await service.bus.drain()

        text = logfile_of(service).read_text()
        assert "dc1-pass" not in text
        assert "AKIA0001" not in text
        assert "service.create.aws  'auth with [OBFUSCATED] / [OBFUSCATED]'" in text

    async def test_directory_update_is_redacted_immediately(self, service: LogRouterService) -> None:
        await service.bus.publish("warmup", b"")
        await service.bus.drain()
        assert service.directory.loaded

        await service.bus.publish(DIRECTORY_SET, b'{"name": "dc2", "password": "dc2-pass"}')
        await service.bus.drain()
        await service.bus.publish("instance.create", b"using dc2-pass")
        await service.bus.drain()

        assert "instance.create  'using [OBFUSCATED]'" in logfile_of(service).read_text()

    async def test_router_feeds_live_stream(self, service: LogRouterService) -> None:
        viewer = service.broadcaster.subscribe(STREAM_LOGS)
        await service.bus.publish("a.b.c.d.e", b'{"secret": "s-123"}')
        await service.bus.drain()

        record = await viewer.get()
        assert record == {
            "subject": "a.b.c.d.e",
            "body": '{"secret": "[OBFUSCATED]"}',
            "level": "debug",
            "user": "system",
        }
        viewer.close()


@pytest.mark.integration
class TestAdapterLifecycle:
    async def test_set_find_delete(self, service: LogRouterService) -> None:
        assert await ask(service.bus, LOGGER_SET, {"type": "stream", "uuid": "ops"}) == {
            "type": "stream",
            "uuid": "ops",
        }
        kinds = [a["type"] for a in await ask(service.bus, LOGGER_FIND, {})]
        assert kinds == ["basic", "stream"]

        assert await ask(service.bus, LOGGER_DEL, {"type": "stream"}) is None
        assert [a["type"] for a in await ask(service.bus, LOGGER_FIND, {})] == ["basic"]

    async def test_router_stream_cannot_be_claimed(self, service: LogRouterService) -> None:
        viewer = service.broadcaster.subscribe(STREAM_LOGS)

        reply = await ask(service.bus, LOGGER_SET, {"type": "stream", "uuid": STREAM_LOGS})

        assert reply == {"error": f"Stream '{STREAM_LOGS}' is reserved"}
        assert service.registry.active_kinds() == ["basic"]
        assert service.broadcaster.viewer_count(STREAM_LOGS) == 1
        viewer.close()

    async def test_logger_log_is_written_once(self, service: LogRouterService) -> None:
        record = {"subject": "api.user", "message": "created", "level": "info", "user": "frank"}
        await service.bus.publish(LOGGER_LOG, json.dumps(record).encode())
        await service.bus.drain()

        lines = [l for l in logfile_of(service).read_text().splitlines() if "api.user" in l]
        assert len(lines) == 1
        assert "level=info user=frank" in lines[0]

    async def test_replacing_basic_switches_files(self, service: LogRouterService, tmp_path: Path) -> None:
        old = logfile_of(service)
        new = tmp_path / "new.log"
        new.touch()

        await ask(service.bus, LOGGER_SET, {"type": "basic", "logfile": str(new)})
        await service.bus.publish("after.switch", b"x")
        await service.bus.drain()

        assert "after.switch" in new.read_text()
        assert "after.switch" not in old.read_text()


@pytest.mark.integration
class TestRestart:
    async def test_adapters_are_replayed(self, test_settings: Settings, tmp_path: Path) -> None:
        custom = tmp_path / "custom.log"
        custom.touch()

        first = await start_service(test_settings, InMemoryBus())
        await ask(first.bus, LOGGER_SET, {"type": "basic", "logfile": str(custom)})
        await ask(first.bus, LOGGER_SET, {"type": "stream", "uuid": "ops"})
        await first.stop()

        second = await start_service(test_settings, InMemoryBus())
        try:
            assert second.registry.active_kinds() == ["basic", "stream"]
            assert logfile_of(second) == custom
        finally:
            await second.stop()

    async def test_deleted_adapter_stays_deleted(self, test_settings: Settings) -> None:
        first = await start_service(test_settings, InMemoryBus())
        await ask(first.bus, LOGGER_SET, {"type": "stream", "uuid": "ops"})
        await ask(first.bus, LOGGER_DEL, {"type": "stream"})
        await first.stop()

        second = await start_service(test_settings, InMemoryBus())
        try:
            assert second.registry.active_kinds() == ["basic"]
        finally:
            await second.stop()

    async def test_missing_basic_adapter_aborts_startup(self, test_settings: Settings) -> None:
        settings = test_settings.model_copy(
            update={"storage": test_settings.storage.model_copy(update={"default_logfile": None})}
        )

        service = LogRouterService(settings, bus=InMemoryBus())
        with pytest.raises(ConfigurationError):
            await service.start()
        await service.bus.close()

    async def test_stop_releases_everything(self, test_settings: Settings) -> None:
        service = await start_service(test_settings, InMemoryBus())
        viewer = service.broadcaster.subscribe(STREAM_LOGS)

        await service.stop()

        assert not service.running
        assert service.bus.subscription_count == 0
        assert await viewer.get() is None
