"""Secret directory: process-wide cache of literal credential values.

The literals are fetched from the directory service over the bus on first
use and kept as an immutable tuple.  Refills take a lock; readers with a
cache hit never wait on it.  Every mutation swaps in a new tuple, so a
reader iterating an old snapshot is never disturbed.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from pydantic import ValidationError

from logrouter.bus.base import MessageBus
from logrouter.exceptions import BusError, DirectoryUnavailableError
from logrouter.logging import get_logger
from logrouter.redaction.envelope import CredentialRecord
from logrouter.subjects import DIRECTORY_FIND

log = get_logger(__name__)


def record_literals(record: CredentialRecord) -> list[str]:
    """Non-empty credential values of *record*, in field order."""
    values = (getattr(record, name) for name in CredentialRecord.model_fields)
    return [v for v in values if v]


def parse_record(raw: bytes | str | dict[str, Any]) -> CredentialRecord | None:
    """Decode one credential-holder record, or None when *raw* is not one."""
    data: Any = raw
    if isinstance(raw, (bytes, str)):
        try:
            data = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(data, dict):
        return None
    try:
        return CredentialRecord.model_validate(data)
    except ValidationError:
        return None


class SecretDirectory:
    """Memoized view of every credential known to the directory service.

    Usage::

        directory = SecretDirectory(bus, timeout=1.0)
        literals = await directory.get_literals()   # fetch once, then cached
        directory.merge(record)                     # on datacenter.set
    """

    def __init__(
        self,
        bus: MessageBus,
        find_subject: str = DIRECTORY_FIND,
        timeout: float = 1.0,
    ) -> None:
        self._bus = bus
        self._find_subject = find_subject
        self._timeout = timeout
        self._snapshot: tuple[str, ...] | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    async def get_literals(self) -> tuple[str, ...]:
        """Return the cached literals, fetching them first if needed.

        Raises:
            DirectoryUnavailableError: the request failed or the reply was
                not a list of records.  Nothing is cached in that case.
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        async with self._lock:
            if self._snapshot is None:
                self._snapshot = await self._fetch()
                log.debug("directory_loaded", literals=len(self._snapshot))
            return self._snapshot

    def merge(self, record: CredentialRecord) -> None:
        """Add *record*'s literals to the cache without a round trip.

        Before the first fetch this is a no-op: the fetch will include the
        record anyway.
        """
        snapshot = self._snapshot
        if snapshot is None:
            return
        known = set(snapshot)
        fresh = [v for v in record_literals(record) if v not in known]
        if fresh:
            self._snapshot = snapshot + tuple(dict.fromkeys(fresh))
            log.debug("directory_merged", added=len(fresh))

    def invalidate(self) -> None:
        """Forget the cache; the next ``get_literals`` refetches."""
        self._snapshot = None

    async def wait_until_available(self, retry_interval: float = 3.0) -> None:
        """Block until the directory answers once."""
        attempt = 0
        while True:
            attempt += 1
            try:
                await self.get_literals()
                return
            except DirectoryUnavailableError as exc:
                log.warning("directory_waiting", attempt=attempt, error=exc.reason)
            await asyncio.sleep(retry_interval)

    async def _fetch(self) -> tuple[str, ...]:
        try:
            reply = await self._bus.request(self._find_subject, b"{}", timeout=self._timeout)
        except BusError as exc:
            raise DirectoryUnavailableError(exc.message) from exc

        try:
            data = json.loads(reply.data)
        except ValueError as exc:
            raise DirectoryUnavailableError("malformed directory reply") from exc
        if not isinstance(data, list):
            raise DirectoryUnavailableError("directory reply is not a list")

        literals: list[str] = []
        for item in data:
            record = parse_record(item) if isinstance(item, dict) else None
            if record is not None:
                literals.extend(record_literals(record))
        return tuple(dict.fromkeys(literals))
