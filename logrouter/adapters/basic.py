"""Basic adapter: appends one line per message to a local file.

This is the mandatory adapter; the service refuses to run without it.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, ClassVar

from pydantic import Field

from logrouter.adapters.base import AdapterConfig, AdapterContext, BaseAdapter
from logrouter.exceptions import AdapterConfigError
from logrouter.logging import get_logger

log = get_logger(__name__)


class BasicConfig(AdapterConfig):
    logfile: str = Field(min_length=1)


def format_line(subject: str, body: str, level: str, user: str, when: datetime | None = None) -> str:
    stamp = (when or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    return f"{stamp} level={level} user={user} : {subject}  '{body}'\n"


def _append(handle: IO[str], line: str) -> None:
    handle.write(line)
    handle.flush()


class BasicAdapter(BaseAdapter):
    """Writes ``level=<l> user=<u> : <subject>  '<body>'`` lines.

    The target file must already exist and be writable; it is opened in
    append mode once and kept open until :meth:`stop`.
    """

    KIND: ClassVar[str] = "basic"
    SUPPORTS_DIRECT_LOG: ClassVar[bool] = True
    Config = BasicConfig

    config: BasicConfig

    def __init__(self, config: BasicConfig, context: AdapterContext) -> None:
        super().__init__(config, context)
        self._file: IO[str] | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return Path(self.config.logfile).expanduser()

    async def open(self) -> None:
        if not self.path.is_file():
            raise AdapterConfigError(self.KIND, f"Specified file '{self.config.logfile}' does not exist")
        try:
            self._file = await asyncio.to_thread(self.path.open, "a", encoding="utf-8")
        except OSError as exc:
            raise AdapterConfigError(
                self.KIND, f"Seems I don't have permissions to write on {self.config.logfile}"
            ) from exc
        log.info("basic_adapter_opened", logfile=str(self.path))

    async def close(self) -> None:
        async with self._lock:
            if self._file is None:
                return
            handle, self._file = self._file, None
            try:
                await asyncio.to_thread(handle.close)
            except OSError as exc:
                log.error("basic_adapter_close_failed", logfile=str(self.path), error=str(exc))

    async def deliver(self, subject: str, body: str) -> None:
        await self.log(subject, body, "debug", "system")

    async def log(self, subject: str, body: str, level: str, user: str) -> None:
        line = format_line(subject, body, level, user)
        async with self._lock:
            if self._file is None:
                log.warning("basic_adapter_closed", dropped_subject=subject)
                return
            try:
                await asyncio.to_thread(_append, self._file, line)
            except (OSError, ValueError) as exc:
                log.error("basic_adapter_write_failed", logfile=str(self.path), error=str(exc))
