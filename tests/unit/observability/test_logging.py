"""Tests for log formatters."""

import json
import logging

from tiercache.observability.logging import ConsoleFormatter, JsonFormatter, configure_logging


def make_record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tiercache.cache.redis",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_core_fields(self) -> None:
        data = json.loads(JsonFormatter().format(make_record("Shared cache get failed")))

        assert data["level"] == "WARNING"
        assert data["logger"] == "tiercache.cache.redis"
        assert data["message"] == "Shared cache get failed"

    def test_extra_fields_are_included(self) -> None:
        """Fields passed via ``extra`` show up in the JSON object."""
        record = make_record("miss", cache_key="threat:analysis:x")

        data = json.loads(JsonFormatter().format(record))

        assert data["cache_key"] == "threat:analysis:x"

    def test_unserializable_extra_is_stringified(self) -> None:
        record = make_record("odd", payload=object())

        data = json.loads(JsonFormatter().format(record))

        assert data["payload"].startswith("<object object")


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_appends_cache_key(self) -> None:
        line = ConsoleFormatter(use_colors=False).format(
            make_record("Corrupt entry", cache_key="user:session:1")
        )

        assert "| WARNING  |" in line
        assert line.endswith("Corrupt entry | key=user:session:1")

    def test_appends_operation_and_skips_empty_key(self) -> None:
        line = ConsoleFormatter(use_colors=False).format(
            make_record("Shared cache scan failed", operation="scan", cache_key=None)
        )

        assert line.endswith("Shared cache scan failed | op=scan")


class TestConfigureLogging:
    def test_replaces_root_handlers(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(json_format=True, level="debug")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert logging.getLogger("redis").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
