"""
Record → ingest-line transformation.

Converts one host log record plus its tag and timestamp into the per-line
structure accepted by the LogDNA ingest API:

    {"level": str, "timestamp": int, "line": str, "file"?: str,
     "app"?: str, "meta"?: Any}

``line`` is the whole record serialized as JSON *text*. Every defaulting path
has a defined fallback and text that is not valid UTF-8 is replaced rather
than rejected, so transformation never raises.
"""

from __future__ import annotations

import math
import time
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Tuple, TypedDict

from .errors import IngestError
from .serialization import serialize_record_to_text
from .settings import IngestSettings

DEFAULT_LEVEL = "INFO"
UNKNOWN_APP = "<UNKNOWN>"
ENCODING_ERROR_KEY = "encoding_error"

_INT64_MIN = -(2**63)
_UINT64_MAX = 2**64 - 1

# (timestamp, record, tag) as handed over by the host buffering layer
LogEvent = Tuple[Any, Mapping[str, Any], Optional[str]]


class _IngestLineRequired(TypedDict):
    level: str
    timestamp: int
    line: str


class IngestLine(_IngestLineRequired, total=False):
    file: str
    app: str
    meta: Any


class BatchPayload(TypedDict):
    lines: list[IngestLine]


def first_present(candidates: Iterable[Any]) -> Any | None:
    """Return the first candidate that is not ``None``."""
    for value in candidates:
        if value is not None:
            return value
    return None


def _tag_suffix(tag: str) -> str | None:
    suffix = tag.rsplit(".", 1)[-1]
    return suffix or None


def resolve_level(tag: str | None, record: Mapping[str, Any]) -> str:
    """Resolve the severity level for a record.

    A missing tag short-circuits to ``"INFO"`` even when the record carries
    ``level`` or ``severity``. With a tag, the order is ``level``,
    ``severity``, the tag's last dot-separated segment, then ``"INFO"``.
    """
    if tag is None:
        return DEFAULT_LEVEL
    level = first_present(
        (
            record.get("level"),
            record.get("severity"),
            _tag_suffix(tag),
            DEFAULT_LEVEL,
        )
    )
    level, _ = sanitize_text(level)
    return str(level)


def coerce_timestamp(timestamp: Any) -> int:
    """Convert host clock values into integer epoch seconds.

    Values that cannot be interpreted fall back to the current time.
    """
    if isinstance(timestamp, bool):
        return int(timestamp)
    if isinstance(timestamp, int):
        return timestamp
    if isinstance(timestamp, float):
        if not math.isfinite(timestamp):
            return int(time.time())
        return int(timestamp)
    if isinstance(timestamp, datetime):
        return int(timestamp.timestamp())
    to_int = getattr(timestamp, "to_int", None)
    if callable(to_int):
        return int(to_int())
    try:
        return int(timestamp)
    except (TypeError, ValueError, OverflowError):
        return int(time.time())


def _raw_bytes(text: str) -> bytes:
    try:
        # Undo surrogate escapes produced when bytes were decoded leniently
        return text.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        return text.encode("utf-8", errors="surrogatepass")


def sanitize_text(value: Any) -> tuple[Any, bool]:
    """Make ``value`` valid UTF-8 text.

    Returns the (possibly replaced) value and whether a lossy replacement was
    needed. Non-text values are returned untouched.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode("utf-8"), False
        except UnicodeDecodeError:
            return raw.decode("utf-8", errors="replace"), True
    if isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            return _raw_bytes(value).decode("utf-8", errors="replace"), True
        return value, False
    return value, False


def _scrub(value: Any) -> tuple[Any, bool]:
    """Recursively sanitize every string (and key) inside ``value``."""
    if isinstance(value, Mapping):
        changed = False
        out: dict[Any, Any] = {}
        for key, item in value.items():
            new_key, key_changed = _scrub(key)
            new_item, item_changed = _scrub(item)
            out[new_key] = new_item
            changed = changed or key_changed or item_changed
        return out, changed
    if isinstance(value, (list, tuple)):
        items = [_scrub(item) for item in value]
        return [item for item, _ in items], any(flag for _, flag in items)
    if isinstance(value, int) and not isinstance(value, bool):
        if not _INT64_MIN <= value <= _UINT64_MAX:
            return str(value), True
        return value, False
    return sanitize_text(value)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text, _ = sanitize_text(value)
    return text if isinstance(text, str) else str(text)


def _serialize_line(record: dict[str, Any], message_key: str) -> str:
    if message_key in record:
        message, replaced = sanitize_text(record[message_key])
        record[message_key] = message
        if replaced:
            record[ENCODING_ERROR_KEY] = True
    try:
        return serialize_record_to_text(record)
    except IngestError:
        pass
    # The message was fine but another field is not representable
    scrubbed, _ = _scrub(record)
    record.clear()
    record.update(scrubbed)
    record[ENCODING_ERROR_KEY] = True
    return serialize_record_to_text(record)


def transform_record(
    tag: str | None,
    timestamp: Any,
    record: Mapping[str, Any],
    settings: IngestSettings,
) -> IngestLine:
    """Build one ingest line from a host record.

    The caller's mapping is never modified; sanitization and the
    ``encoding_error`` flag are applied to a shallow copy.
    """
    working = dict(record)
    text = _serialize_line(working, settings.message_key)
    # Promoted fields come from the sanitized copy so the batch body stays
    # serializable
    line: IngestLine = {
        "level": resolve_level(tag, working),
        "timestamp": coerce_timestamp(timestamp),
        "line": text,
    }

    # The ingest API rejects lines that carry neither a file nor an app
    file = _as_text(first_present((working.get("file"), settings.file)))
    app = _as_text(
        first_present((working.get("_app"), working.get("app"), settings.app))
    )
    if file is None and app is None:
        app = UNKNOWN_APP
    if file is not None:
        line["file"] = file
    if app is not None:
        line["app"] = app

    meta = working.get("meta")
    if meta is not None:
        line["meta"] = meta
    return line


def build_batch(
    events: Iterable[LogEvent],
    settings: IngestSettings,
) -> BatchPayload:
    """Transform a chunk of ``(timestamp, record, tag)`` events, keeping order."""
    return {
        "lines": [
            transform_record(tag, timestamp, record, settings)
            for timestamp, record, tag in events
        ]
    }


__all__ = [
    "BatchPayload",
    "DEFAULT_LEVEL",
    "ENCODING_ERROR_KEY",
    "IngestLine",
    "LogEvent",
    "UNKNOWN_APP",
    "build_batch",
    "coerce_timestamp",
    "first_present",
    "resolve_level",
    "sanitize_text",
    "transform_record",
]
