"""Tests for the Logger class."""

import logging

from aspawn.log import LogConstants, Logger


def _capture(lg: Logger) -> list[logging.LogRecord]:
    records: list[logging.LogRecord] = []

    class _Handler(logging.Handler):
        def emit(self, record):
            records.append(record)

    lg.addHandler(_Handler())
    lg.propagate = False
    return records


class TestLogger:
    """Tests for extra fields, disabling and the TRACE level."""

    def test_extra_merged(self):
        """Test per-call extra fields merge over pre-populated ones."""
        lg = Logger("test.extra", logging.DEBUG, extra={"component": "worker", "a": 1})
        records = _capture(lg)
        lg.info("hello", extra={"a": 2, "pid": 10})
        assert records[0].aspawn_extra == {"component": "worker", "a": 2, "pid": 10}

    def test_disabled(self):
        """Test level False suppresses everything."""
        lg = Logger("test.disabled", False)
        records = _capture(lg)
        lg.critical("nope")
        assert lg.disabled is True
        assert records == []

    def test_trace_level(self):
        lg = Logger("test.trace", LogConstants.CUSTOM_LEVELS["TRACE"])
        records = _capture(lg)
        lg.trace("fine-grained")
        assert records[0].levelname == "TRACE"

    def test_trace_filtered_at_debug(self):
        lg = Logger("test.trace2", logging.DEBUG)
        records = _capture(lg)
        lg.trace("fine-grained")
        assert records == []
