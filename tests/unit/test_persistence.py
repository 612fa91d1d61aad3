"""Unit tests: persistence.py (ConfigStore)."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from logrouter.persistence import ConfigStore

BASIC = '{"type":"basic","logfile":"/var/log/bus.log"}'


@pytest.mark.unit
class TestConfigStore:
    async def test_missing_file_loads_empty(self, config_store: ConfigStore) -> None:
        assert await config_store.load() == {}

    async def test_save_then_load(self, config_store: ConfigStore) -> None:
        await config_store.save("basic", BASIC)
        assert await config_store.load() == {"basic": BASIC}

    async def test_save_creates_parent_directories(self, tmp_path: Path) -> None:
        store = ConfigStore(tmp_path / "deep" / "er" / ".logger")
        await store.save("basic", BASIC)
        assert store.path.is_file()

    async def test_save_replaces_only_that_kind(self, config_store: ConfigStore) -> None:
        await config_store.save("basic", BASIC)
        await config_store.save("stream", '{"uuid":"a"}')
        await config_store.save("stream", '{"uuid":"b"}')

        assert await config_store.load() == {"basic": BASIC, "stream": '{"uuid":"b"}'}

    async def test_raw_text_is_kept_verbatim(self, config_store: ConfigStore) -> None:
        raw = '{ "type" : "basic",  "logfile":"/x", "extra": [1, 2] }'
        await config_store.save("basic", raw)
        assert (await config_store.load())["basic"] == raw

    async def test_remove(self, config_store: ConfigStore) -> None:
        await config_store.save("basic", BASIC)
        await config_store.save("logstash", "{}")
        await config_store.remove("logstash")

        assert await config_store.load() == {"basic": BASIC}

    async def test_remove_unknown_kind_does_not_write(self, config_store: ConfigStore) -> None:
        await config_store.remove("logstash")
        assert not config_store.path.exists()

    async def test_file_is_a_json_object_of_strings(self, config_store: ConfigStore) -> None:
        await config_store.save("basic", BASIC)
        assert json.loads(config_store.path.read_text()) == {"basic": BASIC}
        assert not config_store.path.with_name(".logger.tmp").exists()

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]", '"text"'])
    async def test_corrupt_file_loads_empty(self, config_store: ConfigStore, content: str) -> None:
        config_store.path.write_text(content)
        assert await config_store.load() == {}

    async def test_non_string_values_are_dropped(self, config_store: ConfigStore) -> None:
        config_store.path.write_text(json.dumps({"basic": BASIC, "bogus": 3}))
        assert await config_store.load() == {"basic": BASIC}

    async def test_concurrent_saves_keep_every_kind(self, config_store: ConfigStore) -> None:
        kinds = ["basic", "logstash", "sentry", "stream"]
        await asyncio.gather(*(config_store.save(k, f'{{"k":"{k}"}}') for k in kinds))
        assert sorted(await config_store.load()) == sorted(kinds)
