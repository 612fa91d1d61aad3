"""logrouter: Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names
across all layers.  All log entries include:
    - timestamp (ISO-8601)
    - level
    - module (Python logger name)
    - subject / adapter (bound via context variables when available)
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variables, automatically injected into log records when set.
_ctx_subject: ContextVar[str | None] = ContextVar("subject", default=None)
_ctx_adapter: ContextVar[str | None] = ContextVar("adapter", default=None)


def bind_message_context(
    subject: str | None = None,
    adapter: str | None = None,
) -> None:
    """Bind the bus subject / adapter kind to the current async task."""
    if subject is not None:
        _ctx_subject.set(subject)
    if adapter is not None:
        _ctx_adapter.set(adapter)


def clear_message_context() -> None:
    _ctx_subject.set(None)
    _ctx_adapter.set(None)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _inject_context_vars(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Add ContextVar values to every log record."""
    if (subject := _ctx_subject.get()) is not None:
        event_dict.setdefault("subject", subject)
    if (adapter := _ctx_adapter.get()) is not None:
        event_dict.setdefault("adapter", adapter)
    return event_dict


def _drop_color_message(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Remove uvicorn's ``color_message`` duplicate field."""
    event_dict.pop("color_message", None)
    return event_dict


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    _inject_context_vars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    _drop_color_message,
]

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio", "nats")


def _renderer(format: str) -> Any:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def _handlers(formatter: logging.Formatter, log_file: str | None) -> list[logging.Handler]:
    stream_handler = logging.StreamHandler(sys.stdout)
    handlers: list[logging.Handler] = [stream_handler]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Call once at service startup, before any log statements.  Records from
    third-party libraries (uvicorn, nats, httpx) go through the same
    formatter so the service emits one consistent stream.

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` for human-readable output, ``"json"`` for
                  machine-readable structured logs.
        log_file: Optional path to write logs to in addition to stdout.
    """
    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(format),
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers = _handlers(formatter, log_file)
    root_logger.setLevel(level.upper())

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("adapter_created", adapter="basic", logfile="/var/log/bus.log")
    """
    return structlog.get_logger(name)
