from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

import pytest

from logdna_ingest.core import transform
from logdna_ingest.core.settings import IngestSettings
from logdna_ingest.core.transform import (
    ENCODING_ERROR_KEY,
    UNKNOWN_APP,
    build_batch,
    coerce_timestamp,
    first_present,
    resolve_level,
    sanitize_text,
    transform_record,
)


def _settings(**overrides: Any) -> IngestSettings:
    values: dict[str, Any] = {"api_key": "secret", "hostname": "web-1"}
    values.update(overrides)
    return IngestSettings(**values)


# Level resolution


def test_level_falls_back_to_tag_suffix() -> None:
    assert resolve_level("a.b.c", {"message": "x"}) == "c"


def test_level_single_segment_tag() -> None:
    assert resolve_level("nginx", {}) == "nginx"


def test_level_prefers_level_then_severity() -> None:
    assert resolve_level("a.b", {"level": "WARN", "severity": "ERROR"}) == "WARN"
    assert resolve_level("a.b", {"severity": "ERROR"}) == "ERROR"


@pytest.mark.critical
def test_missing_tag_short_circuits_to_info() -> None:
    # Explicit level/severity are ignored when there is no tag at all
    assert resolve_level(None, {"level": "ERROR"}) == "INFO"
    assert resolve_level(None, {"severity": "DEBUG"}) == "INFO"
    assert resolve_level(None, {}) == "INFO"


def test_empty_tag_suffix_defaults_to_info() -> None:
    assert resolve_level("app.", {}) == "INFO"
    assert resolve_level("", {}) == "INFO"


def test_non_string_level_is_stringified() -> None:
    assert resolve_level("a", {"level": 30}) == "30"


def test_first_present_skips_none_only() -> None:
    assert first_present([None, "", "x"]) == ""
    assert first_present([None, None]) is None


# file / app defaulting


@pytest.mark.critical
def test_unknown_app_sentinel_when_nothing_resolves() -> None:
    line = transform_record("svc", 1, {"message": "hi"}, _settings())
    assert line["app"] == UNKNOWN_APP
    assert "file" not in line


def test_record_file_without_app_omits_app() -> None:
    line = transform_record("svc", 1, {"file": "/var/log/a.log"}, _settings())
    assert line["file"] == "/var/log/a.log"
    assert "app" not in line


def test_non_string_file_and_app_are_stringified() -> None:
    record = {"file": 42, "app": {"name": "x"}}
    line = transform_record("svc", 1, record, _settings())
    assert line["file"] == "42"
    assert line["app"] == "{'name': 'x'}"


def test_bytes_file_and_app_are_decoded() -> None:
    record = {"file": b"/var/log/a.log", "_app": b"svc"}
    line = transform_record("svc", 1, record, _settings())
    assert line["file"] == "/var/log/a.log"
    assert line["app"] == "svc"


def test_underscore_app_wins_over_app() -> None:
    line = transform_record(
        "svc", 1, {"_app": "private", "app": "public"}, _settings(app="default")
    )
    assert line["app"] == "private"


def test_configured_defaults_fill_missing_fields() -> None:
    line = transform_record(
        "svc", 1, {"message": "hi"}, _settings(app="myapp", file="/srv/app.log")
    )
    assert line["app"] == "myapp"
    assert line["file"] == "/srv/app.log"


def test_record_values_override_defaults() -> None:
    line = transform_record(
        "svc",
        1,
        {"app": "rec-app", "file": "rec.log"},
        _settings(app="myapp", file="/srv/app.log"),
    )
    assert line["app"] == "rec-app"
    assert line["file"] == "rec.log"


# meta


def test_meta_copied_verbatim() -> None:
    meta = {"user": {"id": 7}, "tags": ["a", "b"]}
    line = transform_record("svc", 1, {"meta": meta}, _settings())
    assert line["meta"] == meta


def test_meta_omitted_when_absent_or_null() -> None:
    assert "meta" not in transform_record("svc", 1, {}, _settings())
    assert "meta" not in transform_record("svc", 1, {"meta": None}, _settings())


# line serialization


def test_line_is_json_text_of_whole_record() -> None:
    record = {"level": "WARN", "message": "hi", "extra": {"n": 1}}
    line = transform_record("svc.x", 1700000000, record, _settings())

    assert isinstance(line["line"], str)
    assert json.loads(line["line"]) == record
    # insertion order is kept
    assert line["line"].startswith('{"level":"WARN","message":"hi"')


def test_unsupported_values_render_as_text() -> None:
    class Thing:
        def __str__(self) -> str:
            return "thing!"

    line = transform_record("svc", 1, {"obj": Thing(), "n": 1}, _settings())
    assert json.loads(line["line"]) == {"obj": "thing!", "n": 1}


def test_no_null_keys_are_emitted() -> None:
    line = transform_record("svc", 1, {"message": "x"}, _settings())
    assert set(line) == {"level", "timestamp", "line", "app"}
    assert all(value is not None for value in line.values())


# sanitization


@pytest.mark.critical
def test_undecodable_message_bytes_are_replaced_and_flagged() -> None:
    record = {"message": b"bad \xff\xfe bytes", "app": "a"}
    line = transform_record("svc", 1, record, _settings())

    parsed = json.loads(line["line"])
    assert "�" in parsed["message"]
    assert parsed[ENCODING_ERROR_KEY] is True
    # caller's record untouched
    assert record == {"message": b"bad \xff\xfe bytes", "app": "a"}


def test_surrogate_escaped_message_recovers_raw_bytes() -> None:
    message = b"caf\xe9".decode("utf-8", errors="surrogateescape")
    line = transform_record("svc", 1, {"message": message}, _settings())

    parsed = json.loads(line["line"])
    assert parsed["message"] == "caf�"
    assert parsed[ENCODING_ERROR_KEY] is True


def test_lone_surrogate_message_is_replaced() -> None:
    line = transform_record("svc", 1, {"message": "x\ud800y"}, _settings())
    parsed = json.loads(line["line"])
    assert parsed["message"].startswith("x")
    assert parsed["message"].endswith("y")
    assert "�" in parsed["message"]
    assert parsed[ENCODING_ERROR_KEY] is True


def test_valid_bytes_message_decoded_without_flag() -> None:
    line = transform_record("svc", 1, {"message": "héllo".encode()}, _settings())
    parsed = json.loads(line["line"])
    assert parsed["message"] == "héllo"
    assert ENCODING_ERROR_KEY not in parsed


def test_clean_message_is_not_flagged() -> None:
    line = transform_record("svc", 1, {"message": "fine ✓"}, _settings())
    assert ENCODING_ERROR_KEY not in json.loads(line["line"])


def test_custom_message_key() -> None:
    line = transform_record(
        "svc", 1, {"log": b"\xff"}, _settings(message_key="log")
    )
    parsed = json.loads(line["line"])
    assert parsed["log"] == "�"
    assert parsed[ENCODING_ERROR_KEY] is True


def test_bad_text_outside_message_is_scrubbed() -> None:
    record = {"message": "ok", "app": "bad\udcff", "nested": {"k": ["x\ud800"]}}
    line = transform_record("svc", 1, record, _settings())

    parsed = json.loads(line["line"])
    assert parsed[ENCODING_ERROR_KEY] is True
    assert parsed["message"] == "ok"
    assert "�" in parsed["nested"]["k"][0]
    # promoted app comes from the sanitized copy
    assert line["app"] == parsed["app"]
    assert "�" in line["app"]


def test_sanitize_text_passes_non_text_through() -> None:
    assert sanitize_text(42) == (42, False)
    assert sanitize_text(None) == (None, False)


# timestamps


def test_timestamp_coercion() -> None:
    assert coerce_timestamp(1700000000) == 1700000000
    assert coerce_timestamp(1700000000.9) == 1700000000
    when = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert coerce_timestamp(when) == 1704067200
    assert coerce_timestamp("1700000000") == 1700000000


def test_timestamp_uses_host_event_time_to_int() -> None:
    class EventTime:
        def to_int(self) -> int:
            return 123

    assert coerce_timestamp(EventTime()) == 123


@pytest.mark.parametrize(
    "value",
    [float("nan"), float("inf"), float("-inf"), Decimal("Infinity"), Decimal("NaN")],
)
def test_non_finite_timestamp_falls_back_to_now(
    value: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(transform, "time", SimpleNamespace(time=lambda: 1700000000.5))
    assert coerce_timestamp(value) == 1700000000
    line = transform_record("svc", value, {"message": "hi"}, _settings())
    assert line["timestamp"] == 1700000000


# batches


def test_build_batch_preserves_order() -> None:
    events = [
        (1, {"message": "first"}, "svc.info"),
        (2, {"message": "second"}, None),
        (3, {"message": "third", "level": "ERROR"}, "svc.x"),
    ]
    payload = build_batch(events, _settings(app="myapp"))

    lines = payload["lines"]
    assert [json.loads(ln["line"])["message"] for ln in lines] == [
        "first",
        "second",
        "third",
    ]
    assert [ln["level"] for ln in lines] == ["info", "INFO", "ERROR"]
    assert [ln["timestamp"] for ln in lines] == [1, 2, 3]


def test_build_batch_empty() -> None:
    assert build_batch([], _settings()) == {"lines": []}
