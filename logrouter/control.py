"""Control plane: bus subjects that manage adapters and the secret directory.

==================  =======================================  ==========================
Subject             Payload                                  Reply
==================  =======================================  ==========================
``logger.set``      ``{"type": kind, ...config}``            created adapter's config
``logger.del``      ``{"type": kind}``                       ``null``
``logger.find``     ``{}``                                   list of active configs
``logger.log``      ``{subject, message, level, user}``      none
``datacenter.set``  credential-holder record                 none
==================  =======================================  ==========================

Every failure is answered with ``{"error": "<message>"}``; nothing raised
here ever reaches the bus transport.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from logrouter.bus.base import Message, MessageBus, Subscription
from logrouter.exceptions import BusError, ConfigurationError, InvalidAdapterTypeError, LogRouterError
from logrouter.logging import get_logger
from logrouter.redaction.directory import SecretDirectory, parse_record
from logrouter.registry import AdapterRegistry
from logrouter.subjects import DIRECTORY_SET, LOGGER_DEL, LOGGER_FIND, LOGGER_LOG, LOGGER_SET

log = get_logger(__name__)


class LogRecord(BaseModel):
    """A pre-redacted record sent on ``logger.log``."""

    model_config = ConfigDict(extra="ignore")

    subject: str = ""
    message: str = ""
    level: str = "info"
    user: str = "system"


def adapter_kind(data: bytes) -> str:
    """Return the ``type`` field of a control payload.

    Raises:
        ConfigurationError:      *data* is not a JSON object.
        InvalidAdapterTypeError: the ``type`` field is missing or not a string.
    """
    try:
        payload = json.loads(data)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid message: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Invalid message: expected a JSON object")
    kind = payload.get("type")
    if not isinstance(kind, str) or not kind:
        raise InvalidAdapterTypeError(str(kind))
    return kind


class ControlPlane:
    """Translates control-subject traffic into registry and directory calls."""

    def __init__(
        self,
        bus: MessageBus,
        registry: AdapterRegistry,
        directory: SecretDirectory | None = None,
        update_subjects: list[str] | tuple[str, ...] = (DIRECTORY_SET,),
    ) -> None:
        self._bus = bus
        self._registry = registry
        self._directory = directory
        self._update_subjects = tuple(update_subjects)
        self._subscriptions: list[Subscription] = []

    async def start(self) -> None:
        handlers = {
            LOGGER_SET: self._on_set,
            LOGGER_DEL: self._on_delete,
            LOGGER_FIND: self._on_find,
            LOGGER_LOG: self._on_log,
        }
        if self._directory is not None:
            for subject in self._update_subjects:
                handlers[subject] = self._on_directory_update

        for subject, handler in handlers.items():
            self._subscriptions.append(await self._bus.subscribe(subject, handler))
        log.info("control_plane_started", subjects=list(handlers))

    async def stop(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in subscriptions:
            await sub.unsubscribe()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _on_set(self, message: Message) -> None:
        try:
            kind = adapter_kind(message.data)
            adapter = await self._registry.replace(kind, message.data)
        except LogRouterError as exc:
            log.warning("logger_set_failed", error=exc.message, **exc.context)
            await self._reply(message, {"error": exc.message})
            return
        await self._reply(message, adapter.to_dict())

    async def _on_delete(self, message: Message) -> None:
        try:
            kind = adapter_kind(message.data)
            await self._registry.delete(kind)
        except LogRouterError as exc:
            log.warning("logger_del_failed", error=exc.message, **exc.context)
            await self._reply(message, {"error": exc.message})
            return
        await self._reply(message, None)

    async def _on_find(self, message: Message) -> None:
        await self._reply(message, [a.to_dict() for a in self._registry.find()])

    async def _on_log(self, message: Message) -> None:
        try:
            record = LogRecord.model_validate_json(message.data)
        except ValidationError as exc:
            log.warning("logger_log_invalid", error=str(exc))
            return
        await self._registry.log(record.subject, record.message, record.level, record.user)

    async def _on_directory_update(self, message: Message) -> None:
        if self._directory is None:
            return
        record = parse_record(message.data)
        if record is None:
            log.warning("directory_update_invalid", subject=message.subject)
            return
        self._directory.merge(record)

    async def _reply(self, message: Message, payload: Any) -> None:
        try:
            await self._bus.respond(message, json.dumps(payload).encode())
        except BusError as exc:
            log.warning("control_reply_failed", subject=message.subject, error=exc.message)
