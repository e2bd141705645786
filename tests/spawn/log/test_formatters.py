"""Tests for LogFormatter."""

import io
import logging

from aspawn.log import LogFormatter, create_lg


class TestLogFormatter:
    """Tests for line layout, fields and colors."""

    def test_writes_message_and_fields(self):
        stream = io.StringIO()
        lg = create_lg("aspawn.test", "debug", stream=stream)
        lg.info("worker started", extra={"pid": 1234, "attempt": 2})
        line = stream.getvalue()
        assert "[I] worker started" in line
        assert "attempt=2 pid=1234" in line
        assert "[aspawn.test]" in line

    def test_no_colors_for_non_tty(self):
        stream = io.StringIO()
        lg = create_lg("aspawn.test", "info", stream=stream)
        lg.error("plain")
        assert "\x1b[" not in stream.getvalue()

    def test_colors_forced(self):
        stream = io.StringIO()
        lg = create_lg("aspawn.test", "info", colors=True, stream=stream)
        lg.error("red")
        assert stream.getvalue().startswith("\x1b[31m")

    def test_exception_fields_rendered_by_class(self):
        record = logging.LogRecord("n", logging.WARNING, "f", 1, "failed", (), None)
        record.aspawn_extra = {"exception": ValueError("bad")}
        line = LogFormatter().format(record)
        assert "exception=ValueError(bad)" in line
