"""Adapter registry: at most one live adapter per kind.

Per-kind state machine::

    absent ──replace()──► active ──delete()──► absent
                            │  ▲
                            └──┘ replace(): new instance built, old one stopped

Every mutation of a kind runs under that kind's lock, so a delete racing a
replace for the same kind can never leave a half-initialised adapter or a
leaked subscription.  Different kinds never wait on each other.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from logrouter.adapters import ADAPTER_TYPES, MANDATORY_KIND, AdapterContext, BaseAdapter, RedactFn
from logrouter.exceptions import (
    AdapterConfigError,
    BusError,
    ConfigurationError,
    InvalidAdapterTypeError,
    MandatoryAdapterError,
)
from logrouter.logging import get_logger
from logrouter.persistence import ConfigStore
from logrouter.subjects import ADAPTER_PATTERNS

log = get_logger(__name__)


class AdapterRegistry:
    """Owns every live adapter and its persisted configuration.

    Usage::

        registry = AdapterRegistry(context, store, redactor.redact)
        await registry.load_persisted(default_logfile)
        adapter = await registry.replace("logstash", raw_config)
        await registry.delete("logstash")
    """

    def __init__(
        self,
        context: AdapterContext,
        store: ConfigStore,
        redact: RedactFn,
        subjects: tuple[str, ...] = ADAPTER_PATTERNS,
        types: dict[str, type[BaseAdapter]] | None = None,
    ) -> None:
        self._context = context
        self._store = store
        self._redact = redact
        self._subjects = subjects
        self._types = types if types is not None else ADAPTER_TYPES
        self._adapters: dict[str, BaseAdapter] = {}
        self._locks: dict[str, asyncio.Lock] = {kind: asyncio.Lock() for kind in self._types}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, kind: str) -> BaseAdapter | None:
        return self._adapters.get(kind)

    def find(self) -> list[BaseAdapter]:
        """Every active adapter, in replay order."""
        return [self._adapters[k] for k in self._types if k in self._adapters]

    def active_kinds(self) -> list[str]:
        return [a.KIND for a in self.find()]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def replace(self, kind: str, raw: bytes | str) -> BaseAdapter:
        """Create the adapter for *kind*, replacing any active one.

        The new adapter is built before the old one is touched, so a bad
        config leaves the registry unchanged.

        Raises:
            InvalidAdapterTypeError: *kind* is not a known adapter type.
            AdapterConfigError:      *raw* does not describe a usable adapter.
            BusError:                subscribing failed; *kind* is now absent.
        """
        adapter_cls = self._resolve(kind)
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw

        async with self._locks[kind]:
            adapter = await adapter_cls.from_config(text, self._context)

            previous = self._adapters.pop(kind, None)
            if previous is not None:
                await previous.stop()
                log.info("adapter_replaced", adapter=kind)

            try:
                await adapter.manage(self._subjects, self._redact)
            except BusError as exc:
                await adapter.stop()
                log.error("adapter_manage_failed", adapter=kind, error=exc.message)
                raise

            try:
                await self._store.save(kind, text)
            except OSError as exc:
                log.error("adapter_persist_failed", adapter=kind, error=str(exc))

            self._adapters[kind] = adapter
            log.info("adapter_created", adapter=kind)
            return adapter

    async def delete(self, kind: str) -> None:
        """Stop and forget the adapter for *kind*.

        Raises:
            MandatoryAdapterError:   *kind* is the mandatory basic adapter.
            InvalidAdapterTypeError: *kind* is unknown or not active.
        """
        if kind == MANDATORY_KIND:
            raise MandatoryAdapterError(kind)
        self._resolve(kind)

        async with self._locks[kind]:
            adapter = self._adapters.pop(kind, None)
            if adapter is None:
                raise InvalidAdapterTypeError(kind)
            await adapter.stop()
            try:
                await self._store.remove(kind)
            except OSError as exc:
                log.error("adapter_persist_failed", adapter=kind, error=str(exc))
            log.info("adapter_deleted", adapter=kind)

    async def log(self, subject: str, body: str, level: str, user: str) -> None:
        """Write a routed record to every adapter with a direct log path."""
        for adapter in self.find():
            if adapter.SUPPORTS_DIRECT_LOG:
                await adapter.log(subject, body, level, user)

    # ------------------------------------------------------------------
    # Boot / shutdown
    # ------------------------------------------------------------------

    async def load_persisted(self, default_logfile: Path | None = None) -> None:
        """Recreate every persisted adapter, basic first.

        A persisted kind that cannot be rebuilt is logged and skipped.  If
        no basic adapter results, one is created on *default_logfile*.

        Raises:
            ConfigurationError: no basic adapter could be set up at all.
        """
        configs = await self._store.load()
        for kind in configs:
            if kind not in self._types:
                log.warning("adapter_replay_unknown_kind", adapter=kind)

        for kind in self._types:
            raw = configs.get(kind)
            if raw is None:
                continue
            try:
                await self.replace(kind, raw)
            except (AdapterConfigError, BusError) as exc:
                log.error("adapter_replay_failed", adapter=kind, error=exc.message)

        if MANDATORY_KIND in self._adapters:
            return
        if default_logfile is None:
            raise ConfigurationError("No basic logger configured and no default log file set")

        log.info("adapter_default_basic", logfile=str(default_logfile))
        raw = json.dumps({"type": MANDATORY_KIND, "logfile": str(default_logfile)})
        try:
            await self.replace(MANDATORY_KIND, raw)
        except AdapterConfigError as exc:
            raise ConfigurationError(
                f"Could not set up the basic logger: {exc.message}",
                context={"logfile": str(default_logfile)},
            ) from exc

    async def stop_all(self) -> None:
        """Stop every adapter, keeping the persisted state for the next boot."""
        for kind in list(self._types):
            async with self._locks[kind]:
                adapter = self._adapters.pop(kind, None)
                if adapter is not None:
                    await adapter.stop()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, kind: str) -> type[BaseAdapter]:
        adapter_cls = self._types.get(kind)
        if adapter_cls is None:
            raise InvalidAdapterTypeError(kind)
        return adapter_cls
