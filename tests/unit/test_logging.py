from __future__ import annotations

import json
import logging

from tenantql.utils.logging import JsonFormatter, _json_formatter, configure_logging

EXPECTED_ROWS = 10
EXPECTED_TTL = 300


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.rows = EXPECTED_ROWS
    record.table = "pasien"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["table"] == "pasien"
    assert "pathname" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"ttl": EXPECTED_TTL}

    payload = json.loads(_json_formatter(record))

    assert payload["ttl"] == EXPECTED_TTL
    assert "extra" not in payload


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.overrides = {"columns"}

    payload = json.loads(_json_formatter(record))

    assert payload["overrides"] == str({"columns"})


def test_configure_logging_installs_json_formatter() -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging(level="DEBUG", json_logs=True)
        assert root.level == logging.DEBUG
        assert any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)
