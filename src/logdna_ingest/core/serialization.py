"""
JSON serialization helpers built on orjson.

Two payloads are produced on the hot path: the per-record ``line`` text
embedded inside each ingest line, and the outer batch body. Both go through
``serialize_mapping_to_json_bytes`` so failures surface as a single
``IngestError`` type that callers can recover from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import orjson

from .errors import ErrorCategory, IngestError

_BASE_OPTIONS = orjson.OPT_NON_STR_KEYS


def _default(obj: Any) -> Any:
    """Default serializer hook for types orjson does not handle natively."""
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    return str(obj)


@dataclass
class SerializedView:
    """Serialized JSON bytes with zero-copy access."""

    data: bytes

    @property
    def view(self) -> memoryview:
        return memoryview(self.data)

    def __bytes__(self) -> bytes:  # convenience
        return self.data

    def text(self) -> str:
        return self.data.decode("utf-8")


def serialize_mapping_to_json_bytes(
    payload: Mapping[str, Any],
    *,
    sort_keys: bool = False,
) -> SerializedView:
    """Serialize a mapping to JSON bytes without an intermediate str.

    Key insertion order is preserved unless ``sort_keys`` is set.

    Raises:
        IngestError: when the payload holds text that is not valid UTF-8 or
            a value orjson rejects outright (e.g. integers beyond 64 bits).
    """
    option = _BASE_OPTIONS
    if sort_keys:
        option |= orjson.OPT_SORT_KEYS
    try:
        data = orjson.dumps(payload, default=_default, option=option)
    except TypeError as e:
        # orjson.JSONEncodeError subclasses TypeError
        raise IngestError(
            "Serialization failed",
            category=ErrorCategory.SERIALIZATION,
            cause=e,
        ) from e
    return SerializedView(data=data)


def serialize_record_to_text(record: Mapping[str, Any]) -> str:
    """Render a record as compact JSON text for embedding as a string value."""
    return serialize_mapping_to_json_bytes(record).text()


def parse_json_bytes(data: bytes | str) -> Any:
    """Parse JSON, raising ``ValueError`` on malformed input."""
    # orjson.JSONDecodeError subclasses ValueError
    return orjson.loads(data)
