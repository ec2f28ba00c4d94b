"""
Structured logging for the custody kernel.

Responsibility:
    Every kernel log line is one JSON object. The envelope (``ts``,
    ``level``, ``logger``, ``message``) is followed by the invocation
    context bound through ``LogContext``, then the ``extra`` fields of the
    call, then, when an exception is attached, its type, message, ``code``
    and structured attributes.

Architecture position:
    Kernel > infrastructure. Imported by every layer; imports nothing from
    the kernel.

Usage::

    logger = get_logger("services.token_ledger")
    with LogContext.bind(actor_id=caller, operation="transfer"):
        logger.info("invocation_committed", extra={"amount": amount})
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Iterator, TextIO

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

ROOT_LOGGER_NAME = "custody_kernel"

# Invocation-scoped fields, in the order they appear in a log line.
CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "operation",
    "ledger_id",
    "trace_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    field: ContextVar(f"custody_log_{field}", default=None) for field in CONTEXT_FIELDS
}


def _context_var(field: str) -> ContextVar[str | None]:
    try:
        return _context_vars[field]
    except KeyError:
        raise TypeError(f"Unknown log context field: {field!r}") from None


class LogContext:
    """
    Invocation-scoped fields attached to every log line.

    Backed by context variables, so values follow the current thread or
    task. ``None`` never overwrites a bound value.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        for field, value in fields.items():
            var = _context_var(field)
            if value is not None:
                var.set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        bound = {}
        for field in CONTEXT_FIELDS:
            value = _context_vars[field].get()
            if value is not None:
                bound[field] = value
        return bound

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Bind fields for the duration of the block, then restore them."""
        tokens = [
            (var, var.set(value))
            for var, value in ((_context_var(f), v) for f, v in fields.items())
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


def _to_json(value: Any) -> Any:
    """``json.dumps`` fallback for values the kernel puts in log lines."""
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.makeLogRecord({}))
) | {"message", "asctime", "taskName"}


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    fields.update(
        (f"exc_{name}", value)
        for name, value in vars(exc).items()
        if not name.startswith("_")
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRIBUTES:
                line.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            line.update(_exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger ``custody_kernel.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_configure_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``custody_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.
    """
    global _installed_handler
    with _configure_lock:
        if _installed_handler is not None:
            return
        _installed_handler = (
            handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        )
        _installed_handler.setFormatter(StructuredFormatter())

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(_installed_handler)


def reset_logging() -> None:
    """Remove the installed handler so the next configure call applies. Tests only."""
    global _installed_handler
    with _configure_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        if _installed_handler is not None:
            root.removeHandler(_installed_handler)
            _installed_handler = None
        root.setLevel(logging.WARNING)
