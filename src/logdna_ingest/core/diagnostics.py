"""
Internal diagnostics for logdna-ingest.

Diagnostics are structured records describing non-fatal problems inside the
shipper (rejected batches, transport failures) plus optional debug traces.
They are handed to a writer callable; by default one JSON line per record is
written to stderr. Hosts route them into their own logging sink with
``set_writer``.

Warnings are always emitted. Debug records are only emitted when internal
logging is enabled, either through ``configure(enabled=True)`` or the
``LOGDNA_INTERNAL_LOGGING_ENABLED`` environment variable (read once, cached).
"""

from __future__ import annotations

import os
import sys
import time
from typing import Any, Callable

import orjson

Writer = Callable[[dict[str, Any]], None]

_TRUTHY = {"1", "true", "yes", "on"}

_ENVELOPE_KEYS = frozenset({"ts", "level", "component", "event"})

_internal_logging_enabled: bool | None = None


def _stderr_writer(payload: dict[str, Any]) -> None:
    data = orjson.dumps(payload, default=str)
    sys.stderr.write(data.decode("utf-8") + "\n")
    sys.stderr.flush()


_writer: Writer = _stderr_writer


def _is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        raw = os.getenv("LOGDNA_INTERNAL_LOGGING_ENABLED", "")
        _internal_logging_enabled = raw.strip().lower() in _TRUTHY
    return _internal_logging_enabled


def configure(*, enabled: bool) -> None:
    """Explicitly enable or disable debug diagnostics."""
    global _internal_logging_enabled
    _internal_logging_enabled = bool(enabled)


def set_writer(writer: Writer | None) -> None:
    """Route diagnostics to ``writer``; ``None`` restores the stderr writer."""
    global _writer
    _writer = writer if writer is not None else _stderr_writer


def _emit(level: str, component: str, event: str, fields: dict[str, Any]) -> None:
    payload: dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "component": component,
        "event": event,
    }
    # Caller fields that collide with envelope keys are kept as field_<key>
    for key, value in fields.items():
        payload[f"field_{key}" if key in _ENVELOPE_KEYS else key] = value
    try:
        _writer(payload)
    except Exception:
        # A broken diagnostics sink must never break delivery
        pass


def warn(component: str, message: str, /, **fields: Any) -> None:
    _emit("WARN", component, message, fields)


def debug(component: str, message: str, /, **fields: Any) -> None:
    if not _is_enabled():
        return
    _emit("DEBUG", component, message, fields)


# Test helpers


def set_writer_for_tests(writer: Writer) -> None:
    set_writer(writer)


def _reset_for_tests() -> None:
    global _internal_logging_enabled, _writer
    _internal_logging_enabled = None
    _writer = _stderr_writer
