"""
Structured JSON logging for the intake pipeline.

Every record is written as one JSON object per line:

    {"ts": ..., "level": "INFO", "logger": "intake.ingestion.coordinator",
     "message": "batch_committed", "batch_id": ..., "entity_key": ...,
     "inserted": 3}

Messages are event names; details travel in ``extra``. Fields bound on
``LogContext`` (the running import's batch id, entity, mapping signature and
sheet) are added to every record emitted while they are bound. Exceptions
logged with ``exc_info`` contribute ``exc_type``, ``exc_message``, the
``code`` of an ``IntakeError`` and its public attributes as ``exc_*``.
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
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "intake"

# ---------------------------------------------------------------------------
# Import-run context
# ---------------------------------------------------------------------------

_RUN_FIELDS = ("batch_id", "entity_key", "mapping_signature", "sheet")

_run_context: ContextVar[tuple[tuple[str, str], ...]] = ContextVar(
    "intake_run_context", default=()
)


class LogContext:
    """Context-var holder for the fields of the import being processed."""

    @staticmethod
    def _check(fields: dict[str, Any]) -> None:
        unknown = set(fields) - set(_RUN_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Bind fields for the rest of the current context. None values are ignored."""
        cls._check(fields)
        current = dict(_run_context.get())
        current.update({k: str(v) for k, v in fields.items() if v is not None})
        _run_context.set(tuple((k, current[k]) for k in _RUN_FIELDS if k in current))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_run_context.get())

    @classmethod
    def clear(cls) -> None:
        _run_context.set(())

    @classmethod
    def bind(cls, **fields: Any) -> "_BoundContext":
        """Context manager: bind fields on entry, restore the previous ones on exit."""
        cls._check(fields)
        return _BoundContext(fields)


class _BoundContext:
    def __init__(self, fields: dict[str, Any]):
        self._fields = fields
        self._token = None

    def __enter__(self) -> type[LogContext]:
        previous = _run_context.get()
        merged = dict(previous)
        merged.update({k: str(v) for k, v in self._fields.items() if v is not None})
        self._token = _run_context.set(tuple((k, merged[k]) for k in _RUN_FIELDS if k in merged))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        _run_context.reset(self._token)
        self._token = None


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STDLIB_KEYS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``intake`` namespace (``get_logger("ingestion.x")``)."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``intake`` logger.

    Only the first call has an effect until ``reset_logging()``. ``level``
    accepts a number or a level name such as ``"DEBUG"``.
    """
    global _configured
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")

    with _lock:
        if _configured:
            return
        _configured = True

    intake_logger = logging.getLogger(_LOGGER_PREFIX)
    intake_logger.setLevel(level)
    intake_logger.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    intake_logger.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``. Tests only."""
    global _configured
    with _lock:
        _configured = False
    intake_logger = logging.getLogger(_LOGGER_PREFIX)
    intake_logger.handlers.clear()
    intake_logger.setLevel(logging.WARNING)
    intake_logger.propagate = True
