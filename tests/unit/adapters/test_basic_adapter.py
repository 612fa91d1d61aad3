"""Unit tests: adapters/basic.py and the shared BaseAdapter behaviour."""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime, timezone
from pathlib import Path

import pytest

from logrouter.adapters import AdapterContext, BasicAdapter
from logrouter.adapters import basic as basic_module
from logrouter.adapters.base import parse_config
from logrouter.adapters.basic import BasicConfig, format_line
from logrouter.bus import InMemoryBus
from logrouter.exceptions import AdapterConfigError
from logrouter.subjects import ADAPTER_PATTERNS, LOGGER_LOG

LINE = re.compile(r"^\S+ level=(\w+) user=(\S+) : (\S+)  '(.*)'$")


def basic_config(path: Path) -> str:
    return json.dumps({"type": "basic", "logfile": str(path)})


@pytest.mark.unit
class TestParseConfig:
    def test_type_is_forced_to_kind(self) -> None:
        config = parse_config("basic", BasicConfig, '{"type": "other", "logfile": "/x"}')
        assert config.type == "basic"

    def test_unknown_fields_are_ignored(self) -> None:
        config = parse_config("basic", BasicConfig, '{"logfile": "/x", "extra": 1}')
        assert config.model_dump() == {"type": "basic", "logfile": "/x"}

    @pytest.mark.parametrize("raw", ["not json", "[1]", '{"logfile": ""}', "{}"])
    def test_bad_input_raises(self, raw: str) -> None:
        with pytest.raises(AdapterConfigError, match="Invalid configuration"):
            parse_config("basic", BasicConfig, raw)


@pytest.mark.unit
class TestFormatLine:
    def test_layout(self) -> None:
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        line = format_line("logger.set", "{}", "debug", "system", when=when)
        assert line == "2024-01-02T03:04:05+00:00 level=debug user=system : logger.set  '{}'\n"


@pytest.mark.unit
class TestBasicAdapterOpen:
    async def test_missing_file_is_rejected(self, tmp_path: Path, adapter_context: AdapterContext) -> None:
        missing = tmp_path / "nope.log"
        with pytest.raises(AdapterConfigError, match="does not exist"):
            await BasicAdapter.from_config(basic_config(missing), adapter_context)

    async def test_directory_is_rejected(self, tmp_path: Path, adapter_context: AdapterContext) -> None:
        with pytest.raises(AdapterConfigError):
            await BasicAdapter.from_config(basic_config(tmp_path), adapter_context)

    async def test_to_dict_echoes_config(self, logfile: Path, adapter_context: AdapterContext) -> None:
        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        try:
            assert adapter.to_dict() == {"type": "basic", "logfile": str(logfile)}
            assert adapter.name() == "basic"
        finally:
            await adapter.stop()


@pytest.mark.unit
class TestBasicAdapterDelivery:
    async def test_managed_messages_are_appended(
        self, bus: InMemoryBus, logfile: Path, adapter_context: AdapterContext, passthrough
    ) -> None:
        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        await adapter.manage(ADAPTER_PATTERNS, passthrough)

        await bus.publish("service.create", b'{"id": 1}')
        await bus.publish("service.create.aws.error", b"boom")
        await bus.drain()
        await adapter.stop()

        lines = logfile.read_text().splitlines()
        assert [LINE.match(line).groups() for line in lines] == [
            ("debug", "system", "service.create", '{"id": 1}'),
            ("debug", "system", "service.create.aws.error", "boom"),
        ]

    async def test_redaction_is_applied(
        self, bus: InMemoryBus, logfile: Path, adapter_context: AdapterContext
    ) -> None:
        async def shout(raw: str) -> str:
            return raw.upper()

        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        await adapter.manage(ADAPTER_PATTERNS, shout)
        await bus.publish("a.b", b"quiet")
        await bus.drain()
        await adapter.stop()

        assert "'QUIET'" in logfile.read_text()

    async def test_excluded_subjects_are_skipped(
        self, bus: InMemoryBus, logfile: Path, adapter_context: AdapterContext, passthrough
    ) -> None:
        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        await adapter.manage(ADAPTER_PATTERNS, passthrough)
        await bus.publish(LOGGER_LOG, b'{"message": "x"}')
        await bus.drain()
        await adapter.stop()

        assert logfile.read_text() == ""

    async def test_direct_log_uses_given_level_and_user(
        self, logfile: Path, adapter_context: AdapterContext
    ) -> None:
        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        await adapter.log("api.call", "hello", "warning", "alice")
        await adapter.stop()

        match = LINE.match(logfile.read_text().strip())
        assert match is not None
        assert match.groups() == ("warning", "alice", "api.call", "hello")

    async def test_stop_unsubscribes_and_later_writes_are_dropped(
        self, bus: InMemoryBus, logfile: Path, adapter_context: AdapterContext, passthrough
    ) -> None:
        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        await adapter.manage(ADAPTER_PATTERNS, passthrough)
        assert adapter.subscription_count == len(ADAPTER_PATTERNS)

        await adapter.stop()
        assert adapter.subscription_count == 0
        assert bus.subscription_count == 0

        await adapter.log("late", "x", "info", "system")
        assert logfile.read_text() == ""


@pytest.mark.unit
class TestBasicAdapterThreading:
    async def test_file_io_runs_off_the_event_loop(
        self, monkeypatch: pytest.MonkeyPatch, logfile: Path, adapter_context: AdapterContext
    ) -> None:
        real_to_thread = asyncio.to_thread
        offloaded: list[str] = []

        async def recording_to_thread(func, /, *args, **kwargs):
            offloaded.append(getattr(func, "__name__", repr(func)))
            return await real_to_thread(func, *args, **kwargs)

        monkeypatch.setattr(basic_module.asyncio, "to_thread", recording_to_thread)

        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        await adapter.log("api.call", "hello", "info", "alice")
        await adapter.stop()

        assert offloaded == ["open", "_append", "close"]
        assert "api.call  'hello'" in logfile.read_text()

    async def test_close_twice_is_harmless(self, logfile: Path, adapter_context: AdapterContext) -> None:
        adapter = await BasicAdapter.from_config(basic_config(logfile), adapter_context)
        await adapter.close()
        await adapter.close()
        await adapter.log("late", "x", "info", "system")
        assert logfile.read_text() == ""
