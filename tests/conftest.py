"""Shared pytest fixtures for the logrouter test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncGenerator, Awaitable, Callable

import jwt
import pytest
import pytest_asyncio

from logrouter.adapters import AdapterContext
from logrouter.bus import InMemoryBus, Message
from logrouter.config import Settings, override_settings
from logrouter.persistence import ConfigStore
from logrouter.streaming.broadcaster import StreamBroadcaster
from logrouter.subjects import DIRECTORY_FIND

JWT_SECRET = "test-secret-with-at-least-32-bytes!!"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        bus={"url": "memory://"},
        storage={
            "config_dir": str(tmp_path / "config"),
            "default_logfile": str(tmp_path / "logs" / "logger.log"),
        },
        directory={"wait_on_startup": False},
        auth={"jwt_secret": JWT_SECRET},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def bus() -> AsyncGenerator[InMemoryBus, None]:
    b = InMemoryBus()
    await b.connect()
    yield b
    await b.close()


DirectoryServer = Callable[[list[dict[str, Any]]], Awaitable[None]]


@pytest.fixture
def serve_directory(bus: InMemoryBus) -> DirectoryServer:
    """Answer ``datacenter.find`` on *bus* with the given records."""

    async def _serve(records: list[dict[str, Any]]) -> None:
        async def _respond(message: Message) -> None:
            await bus.respond(message, json.dumps(records).encode())

        await bus.subscribe(DIRECTORY_FIND, _respond)

    return _serve


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


@pytest.fixture
def broadcaster() -> StreamBroadcaster:
    return StreamBroadcaster(queue_size=10)


@pytest.fixture
def adapter_context(bus: InMemoryBus, broadcaster: StreamBroadcaster) -> AdapterContext:
    return AdapterContext(bus=bus, broadcaster=broadcaster, http_timeout=1.0)


@pytest.fixture
def logfile(tmp_path: Path) -> Path:
    path = tmp_path / "bus.log"
    path.touch()
    return path


@pytest.fixture
def config_store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / ".logger")


@pytest.fixture
def passthrough() -> Callable[[str], Awaitable[str]]:
    """A redact function that changes nothing."""

    async def _redact(raw: str) -> str:
        return raw

    return _redact


# ---------------------------------------------------------------------------
# Live-stream auth
# ---------------------------------------------------------------------------


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Sign a viewer token with the test secret."""

    def _make(secret: str = JWT_SECRET, **claims: Any) -> str:
        payload = {"username": "admin", "admin": True, **claims}
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make
