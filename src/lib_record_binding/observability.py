"""Logging for record operations and file I/O.

Purpose
    The engines never log; the composition root, the file adapters and the
    linker report what they did through the helpers below. Each entry carries
    a ``context`` dict (``operation``, ``record``, counts, paths) plus the
    active trace id, so a host application can correlate one layered
    ``read_record`` call with the files it merged.

Contents
    - ``TRACE_ID``: context variable holding the active trace id.
    - ``get_logger``: the ``lib_record_binding`` logger, silent until the host
      attaches a handler.
    - ``bind_trace_id``: set or clear the trace id.
    - ``log_debug`` / ``log_info`` / ``log_error``: emit one entry.
    - ``make_event``: build the ``operation``/``record`` payload.

Events
    ``record_bound``, ``record_merged``, ``record_unbound`` (debug),
    ``references_linked`` (info), ``reference_unresolved`` (debug),
    ``layer_missing`` / ``layer_error`` (debug), ``record_file_read`` /
    ``record_file_loaded`` / ``record_file_written`` (debug) and
    ``record_file_invalid`` / ``record_file_write_failed`` (error).
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("lib_record_binding_trace_id", default=None)
"""Trace id attached to every entry; ``None`` when unset."""

_LOGGER: Final[logging.Logger] = logging.getLogger("lib_record_binding")
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Return the ``lib_record_binding`` logger.

    Only a ``NullHandler`` is installed, so nothing is printed unless the host
    application configures handlers or propagates to the root logger.
    """

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Set the trace id for subsequent entries; ``None`` clears it.

    Examples
    --------
    >>> bind_trace_id('abc123')
    >>> TRACE_ID.get()
    'abc123'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, **fields: Any) -> None:
    """Log *message* at DEBUG with *fields* as the entry context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Log *message* at INFO with *fields* as the entry context."""

    _emit(logging.INFO, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Log *message* at ERROR with *fields* as the entry context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    operation: str,
    record: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Return the context dict for one engine operation.

    What
        ``operation`` and ``record`` first, then the payload keys.
    Inputs
        operation: Engine operation being observed (``bind``, ``unbind``, ...).
        record: Name of the record type involved, if any.
        payload: Optional mapping with extra diagnostic detail.

    Examples
    --------
    >>> make_event('bind', 'Service', {'keys': 3})
    {'operation': 'bind', 'record': 'Service', 'keys': 3}
    """

    event: dict[str, Any] = {"operation": operation, "record": record}
    if payload:
        event |= dict(payload)
    return event


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Log through the package logger, storing the context under ``extra["context"]``."""

    _LOGGER.log(level, message, extra={"context": _with_trace(fields)})


def _with_trace(fields: Mapping[str, Any]) -> dict[str, Any]:
    context: dict[str, Any] = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    return context
