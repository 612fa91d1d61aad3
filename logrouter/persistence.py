"""Persisted adapter configuration.

The state file maps each adapter kind to the raw config text it was last
set with::

    {"basic": "{\\"type\\":\\"basic\\",\\"logfile\\":\\"/var/log/bus.log\\"}"}

It is read once at boot and rewritten after every successful create or
delete.  Writes go to a sibling temp file which then replaces the state file,
so a crash mid-write never leaves a truncated file behind.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

from logrouter.logging import get_logger

log = get_logger(__name__)


class ConfigStore:
    """JSON-file store of ``{kind: raw_config}``.

    Usage::

        store = ConfigStore(Path("~/.logrouter/.logger").expanduser())
        await store.save("basic", raw)
        configs = await store.load()
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> dict[str, str]:
        """Return every persisted config.  Missing or corrupt file → empty."""
        async with self._lock:
            return await asyncio.to_thread(self._read)

    async def save(self, kind: str, raw: str) -> None:
        async with self._lock:
            state = await asyncio.to_thread(self._read)
            state[kind] = raw
            await asyncio.to_thread(self._write, state)

    async def remove(self, kind: str) -> None:
        async with self._lock:
            state = await asyncio.to_thread(self._read)
            if state.pop(kind, None) is None:
                return
            await asyncio.to_thread(self._write, state)

    # ------------------------------------------------------------------
    # Internals (run in a worker thread)
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            log.error("config_store_read_failed", path=str(self._path), error=str(exc))
            return {}

        try:
            data = json.loads(text)
        except ValueError as exc:
            log.error("config_store_corrupt", path=str(self._path), error=str(exc))
            return {}
        if not isinstance(data, dict):
            log.error("config_store_corrupt", path=str(self._path), error="not a JSON object")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, state: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(state, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self._path)
