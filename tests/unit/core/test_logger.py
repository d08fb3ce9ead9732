"""
Unit tests for core.logger module.

Tests:
- Logger initialization and JSON mode
- format_kv_pairs() escaping and truncation
- StructuredFormatter in key=value and JSON modes
- Level filtering
"""

import json
import logging

import pytest

from excalibur.core.logger import Logger, StructuredFormatter, format_kv_pairs


class TestInit:
    """Logger initialization."""

    def test_name(self):
        logger = Logger("clone")
        assert logger.name == "clone"

    def test_default_not_json(self):
        logger = Logger("test")
        assert logger._json_output is False

    def test_json_mode(self):
        logger = Logger("test", json_output=True)
        assert logger._json_output is True

    def test_default_max_value_length(self):
        assert Logger("test")._max_value_length == 1000


class TestFormatKvPairs:
    """Key-value pairs formatting and escaping."""

    def test_empty(self):
        assert format_kv_pairs({}) == ""

    def test_simple(self):
        assert format_kv_pairs({"relays": 2}) == " relays=2"

    def test_multiple(self):
        assert format_kv_pairs({"a": 1, "b": "x"}) == " a=1 b=x"

    def test_with_spaces(self):
        assert format_kv_pairs({"error": "connection refused"}) == ' error="connection refused"'

    def test_with_equals(self):
        assert format_kv_pairs({"key": "foo=bar"}) == ' key="foo=bar"'

    def test_with_double_quotes(self):
        assert format_kv_pairs({"key": 'say "hello"'}) == ' key="say \\"hello\\""'

    def test_empty_value(self):
        assert format_kv_pairs({"key": ""}) == ' key=""'

    def test_truncation(self):
        result = format_kv_pairs({"key": "x" * 20}, max_value_length=5)
        assert result == ' key="xxxxx...<truncated 15 chars>"'

    def test_no_truncation_when_disabled(self):
        assert format_kv_pairs({"key": "x" * 2000}, max_value_length=None) == " key=" + "x" * 2000

    def test_custom_prefix(self):
        assert format_kv_pairs({"a": 1}, prefix="") == "a=1"


class TestLogging:
    """Records emitted through the standard logging machinery."""

    def test_kv_fields_attached(self, caplog: pytest.LogCaptureFixture):
        logger = Logger("test_kv")
        with caplog.at_level(logging.INFO, logger="test_kv"):
            logger.info("query_completed", relays=2, events=3)

        record = caplog.records[-1]
        assert record.getMessage() == "query_completed"
        assert record.structured_kv == {"relays": "2", "events": "3"}

    def test_json_output(self, caplog: pytest.LogCaptureFixture):
        logger = Logger("test_json", json_output=True)
        with caplog.at_level(logging.INFO, logger="test_json"):
            logger.info("clone_completed", published=3)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["message"] == "clone_completed"
        assert payload["level"] == "info"
        assert payload["service"] == "test_json"
        assert payload["published"] == "3"

    def test_below_level_not_emitted(self, caplog: pytest.LogCaptureFixture):
        logger = Logger("test_level")
        with caplog.at_level(logging.WARNING, logger="test_level"):
            logger.debug("noise", a=1)
        assert not [r for r in caplog.records if r.name == "test_level"]

    @pytest.mark.parametrize(
        ("method", "level"),
        [
            ("debug", logging.DEBUG),
            ("info", logging.INFO),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
        ],
    )
    def test_levels(self, caplog: pytest.LogCaptureFixture, method: str, level: int):
        logger = Logger("test_levels")
        with caplog.at_level(logging.DEBUG, logger="test_levels"):
            getattr(logger, method)("event_name")
        assert caplog.records[-1].levelno == level

    def test_exception_includes_traceback(self, caplog: pytest.LogCaptureFixture):
        logger = Logger("test_exc")
        with caplog.at_level(logging.ERROR, logger="test_exc"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("failed")
        assert caplog.records[-1].exc_info is not None


class TestStructuredFormatter:
    """StructuredFormatter output."""

    @staticmethod
    def _record(msg: str = "event_name", **kv: str) -> logging.LogRecord:
        record = logging.LogRecord("clone", logging.INFO, __file__, 1, msg, None, None)
        if kv:
            record.structured_kv = kv
        return record

    def test_plain(self):
        assert StructuredFormatter().format(self._record()) == "info clone event_name"

    def test_with_kv(self):
        line = StructuredFormatter().format(self._record(relays="2"))
        assert line == "info clone event_name relays=2"

    def test_json(self):
        line = StructuredFormatter(json_output=True).format(self._record(relays="2"))
        payload = json.loads(line)
        assert payload["level"] == "info"
        assert payload["service"] == "clone"
        assert payload["message"] == "event_name"
        assert payload["relays"] == "2"
        assert "timestamp" in payload
