"""
Structured logging for the MFI ledger.

Every record under the ``mfi_kernel`` logger leaves as one JSON object per
line, or as a ``key=value`` line when a terminal format is asked for.
Identifiers bound through ``LogContext`` (the acting user, the loan, the
journal entry) are merged into each record, so all the lines of one loan
payment carry its ``loan_id`` without every call site repeating it.
"""

__all__ = [
    "StructuredFormatter",
    "TextFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

from mfi_kernel.exceptions import MfiKernelError

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "client_id",
    "loan_id",
    "entry_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})

_context: ContextVar[Mapping[str, str]] = ContextVar("mfi_log_context", default=_EMPTY)


def _merged(fields: Mapping[str, Any]) -> Mapping[str, str]:
    current = dict(_context.get())
    for key, value in fields.items():
        if key in _CONTEXT_FIELDS and value is not None:
            current[key] = str(value)
    return MappingProxyType(current)


class LogContext:
    """
    Request-scoped log fields, held in a ContextVar.

    Each thread and each asyncio task sees its own values.  Only the names
    in ``_CONTEXT_FIELDS`` are accepted; other keys and None values are
    ignored.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    def bind(**fields: Any) -> "_Binding":
        """Context manager: add fields on entry, restore the previous set on exit."""
        return _Binding(fields)


class _Binding:
    def __init__(self, fields: Mapping[str, Any]):
        self._fields = fields
        self._token: Token | None = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set(_merged(self._fields))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _plain(value: Any) -> Any:
    """JSON fallback: money, ids, dates and enums become strings."""
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(_context.get())
    for key, value in vars(record).items():
        if key not in _STDLIB_KEYS and key not in payload:
            payload[key] = value
    return payload


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, MfiKernelError):
        fields["exc_code"] = exc.code
        for key, value in vars(exc).items():
            if not key.startswith("_"):
                fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = _record_fields(record)
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_plain)


class TextFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL message key=value ...`` for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        payload = _record_fields(record)
        stamp = datetime.fromtimestamp(record.created, tz=UTC).strftime("%H:%M:%S")
        head = f"{stamp} {payload.pop('level'):<7} {payload.pop('message')}"
        payload.pop("ts")
        payload.pop("logger")
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
        tail = " ".join(
            f"{key}={value if isinstance(value, (str, int, bool)) else _plain(value)}"
            for key, value in payload.items()
        )
        line = f"{head} {tail}" if tail else head
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": StructuredFormatter,
    "text": TextFormatter,
}

# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "mfi_kernel"


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``mfi_kernel`` namespace, e.g. ``mfi_kernel.modules.loans``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
    fmt: str = "json",
) -> None:
    """
    Attach one handler to the ``mfi_kernel`` logger.

    Only the first call has any effect; later calls (for example from
    ``init_engine_from_url``) leave the existing setup alone.

    Raises:
        ValueError: ``fmt`` is neither ``"json"`` nor ``"text"``.
    """
    global _configured
    if fmt not in _FORMATTERS:
        raise ValueError(f"Unknown log format: {fmt!r}")
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(_FORMATTERS[fmt]())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Used by tests and scripts."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
