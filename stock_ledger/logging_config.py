"""
Structured JSON logging for the stock ledger.

Every record is written as one JSON object per line.  Records emitted
inside a StockLedger operation carry the operation's context (correlation
id, actor, product, operation name), so all lines of one unit of work can
be joined, including those logged by the services it calls.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "stock_ledger"

# ---------------------------------------------------------------------------
# Operation context
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "operation", "actor_id", "product_id")


class LogContext:
    """Per-operation log fields, isolated per thread and per task."""

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"stock_ledger_{name}", default=None)
        for name in _CONTEXT_FIELDS
    }

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """The fields currently bound, without the unset ones."""
        values = {name: var.get() for name, var in cls._vars.items()}
        return {name: value for name, value in values.items() if value is not None}

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: object) -> Iterator[None]:
        """
        Bind fields for the duration of a ``with`` block.

        None values are skipped, so an outer binding of the same field stays
        visible.  Unknown field names raise KeyError.
        """
        tokens = [
            (cls._vars[name], cls._vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    return repr(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """exc_type/exc_message, plus the code and attributes of ledger errors."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_KEYS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the stock_ledger namespace, e.g. ``services.movement``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``stock_ledger`` logger.

    Only the first call has an effect; the engine and the ledger both call
    this, and whichever runs first wins.  ``level`` accepts a name such as
    ``"DEBUG"`` as found in LedgerSettings.  Records do not propagate to the
    root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

        ledger_logger = logging.getLogger(_LOGGER_PREFIX)
        ledger_logger.setLevel(level.upper() if isinstance(level, str) else level)
        ledger_logger.propagate = False

        target = handler or logging.StreamHandler(sys.stderr)
        target.setFormatter(StructuredFormatter())
        ledger_logger.addHandler(target)


def reset_logging() -> None:
    """Undo configure_logging(). Used by the test suite."""
    global _configured
    with _lock:
        _configured = False
        ledger_logger = logging.getLogger(_LOGGER_PREFIX)
        ledger_logger.handlers.clear()
        ledger_logger.setLevel(logging.WARNING)
